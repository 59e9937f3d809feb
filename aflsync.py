#!/usr/bin/env python3
"""
aflsync - AFL sync directory replication for Kubernetes

Central run script that allows running without installation.
Usage:
    ./aflsync.py [command] [options]
    python aflsync.py [command] [options]

For installation:
    pip install -e .
    # Then use: aflsync [command] [options]
"""

import sys
from pathlib import Path

# Add the project root to Python path for direct execution
project_root = Path(__file__).parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from aflsync.cli import main

if __name__ == "__main__":
    main()
