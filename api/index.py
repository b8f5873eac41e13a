"""
Serverless entry point for the Help-Desk SLA API.

The in-process scheduler is disabled here; the platform cron calls
/sla/check instead.
"""
import os
import sys

src_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("SLA_SWEEP_INTERVAL", "0")

from mangum import Mangum
from helpdesk.main import app

# Lifespan stays on: it opens the database engine
handler = Mangum(app, lifespan="auto")
