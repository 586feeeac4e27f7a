import sys

from wifi_exporter.cli import main

sys.exit(main())
