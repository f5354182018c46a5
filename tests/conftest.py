"""
Test configuration for the take-home pay calculator.

The modules live at the project root (flat layout), so the root is put on
sys.path for runs that happen without an editable install.
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent

if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))
