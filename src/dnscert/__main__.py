import sys

from dnscert.cli import main

sys.exit(main())
