import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_PATH = os.getenv("DATABASE_PATH", "../data/coldwatch.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# SensorPush vendor API
SENSORPUSH_BASE_URL = os.getenv("SENSORPUSH_BASE_URL", "https://api.sensorpush.com/api/v1")
SENSORPUSH_EMAIL = os.getenv("SENSORPUSH_EMAIL", "")
SENSORPUSH_PASSWORD = os.getenv("SENSORPUSH_PASSWORD", "")
SENSORPUSH_TIMEOUT_SECONDS = float(os.getenv("SENSORPUSH_TIMEOUT_SECONDS", "15"))
SENSORPUSH_TEMPERATURE_UNIT = os.getenv("SENSORPUSH_TEMPERATURE_UNIT", "F")
SENSORPUSH_SAMPLES_BATCH_SIZE = int(os.getenv("SENSORPUSH_SAMPLES_BATCH_SIZE", "50"))

# Access tokens are short-lived - hardcoded like the vendor documents it
TOKEN_LIFETIME_MINUTES = 30

LOW_BATTERY_VOLTAGE = float(os.getenv("LOW_BATTERY_VOLTAGE", "2.4"))

# Run-lock leases for the scheduled jobs. Jobs renew the lease after every vendor
# fetch and every item, so the TTL must outlast the slowest single step, not a whole run
SWEEP_LOCK_TTL_SECONDS = int(os.getenv("SWEEP_LOCK_TTL_SECONDS", "600"))
SYNC_LOCK_TTL_SECONDS = int(os.getenv("SYNC_LOCK_TTL_SECONDS", "1800"))
