import sys

from nmos6502.cli import main

sys.exit(main())
