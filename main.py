#!/usr/bin/env python3
"""FlowTimer — entry point.

Run with:
    python main.py
    python -m flowtimer
"""

from flowtimer.__main__ import main


if __name__ == "__main__":
    main()
