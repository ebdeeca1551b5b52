import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
PACKAGE = os.path.join(ROOT, "breaktimer")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if PACKAGE not in sys.path:
    sys.path.insert(0, PACKAGE)
