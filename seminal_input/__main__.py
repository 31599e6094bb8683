"""Allow ``python -m seminal_input``."""

from seminal_input.main import main

raise SystemExit(main())
