from __future__ import annotations

from grin.cli import main

raise SystemExit(main())
