import sys

from vpnprobe.main import main

sys.exit(main())
