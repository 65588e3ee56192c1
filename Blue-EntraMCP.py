#!/usr/bin/env python3

from blueidp.entra_server import main


if __name__ == "__main__":
    raise SystemExit(main())
