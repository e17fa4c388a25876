import sys

from hidalgo.main import main

sys.exit(main())
