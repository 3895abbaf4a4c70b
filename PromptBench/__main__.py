import sys

from .TestRunner import main

sys.exit(main())
