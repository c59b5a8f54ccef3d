"""Runtime settings, read once from the environment."""
import os

# Service URL - configurable via environment variable
SCHOOL_DATA_SERVICE_URL = os.getenv("SCHOOL_DATA_SERVICE_URL", "http://localhost:3000")

# Timeout settings (in seconds)
REQUEST_TIMEOUT = float(os.getenv("LOAD_MONITOR_REQUEST_TIMEOUT", "8.0"))  # each endpoint
FETCH_TIMEOUT = float(os.getenv("LOAD_MONITOR_FETCH_TIMEOUT", "10.0"))  # all three endpoints together
BACKSTOP_TIMEOUT = float(os.getenv("LOAD_MONITOR_BACKSTOP_TIMEOUT", "15.0"))  # whole load cycle

# Pause between a new assignment being recorded and the refresh it triggers
SETTLE_DELAY = float(os.getenv("LOAD_MONITOR_SETTLE_DELAY", "0.5"))
