"""Allow ``python -m dynamic_record_compiler``."""

from .cli import main

raise SystemExit(main())
