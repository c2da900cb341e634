import sys

from diskguard.cli import main

sys.exit(main())
