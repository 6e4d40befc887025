import sys

from derby_gateway.cli import main

sys.exit(main())
