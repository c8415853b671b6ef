import sys

from notion_notifier.app import main

sys.exit(main())
