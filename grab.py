#!/usr/bin/env python3
"""nvdgrab export — thin shim.

Lets ``python grab.py out.csv 2020 2023 headers.txt "noRejected&"`` work
from a checkout without installing the package.

The real implementation lives in ``nvdgrab/``.
"""

from nvdgrab.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
