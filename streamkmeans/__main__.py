import sys

from streamkmeans.main import main

sys.exit(main())
