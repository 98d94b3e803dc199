"""Global pytest configuration."""

import os

# Keep the spend generator and any real ledger bridge out of tests that
# import the module-level app
os.environ.setdefault("GENERATOR_ENABLED", "false")
os.environ.setdefault("LEDGER_URL", "")
