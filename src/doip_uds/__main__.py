import sys

from doip_uds.app import main

sys.exit(main())
