import sys

from driverpro_notifier.main import main

sys.exit(main())
