"""Pytest bootstrap putting the repository root first on sys.path.

The project is a flat layout (collectors/, core/, output/ and softnetstat.py
at the root), so tests import the in-repo modules directly even when the
package is not installed.
"""

import os, sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
