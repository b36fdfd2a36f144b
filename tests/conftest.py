from __future__ import annotations

import os

# Keep rich output free of ANSI escapes so CLI assertions can match plain text.
os.environ.setdefault("NO_COLOR", "1")
