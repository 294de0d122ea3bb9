# Root-level pytest hook: keep the flat top-level packages (app, modules,
# shared, cogs, config) importable when pytest runs from another directory.
import os
import sys

_root = os.path.dirname(os.path.abspath(__file__))
if _root not in sys.path:
    sys.path.insert(0, _root)
