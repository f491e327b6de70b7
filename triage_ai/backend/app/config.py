# triage_ai/backend/app/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

# Load overrides from .env at project root
load_dotenv()

APP_DIR = Path(__file__).resolve().parent
BASE_DIR = APP_DIR.parents[2]

LOGS_DIR = Path(os.getenv("TRIAGE_LOGS_DIR", str(BASE_DIR / "logs")))
TRAINING_LOG_PATH = LOGS_DIR / "training.jsonl"
CLASSIFICATION_LOG_PATH = LOGS_DIR / "classifications.jsonl"

# Where the trained bag-of-words model is saved
MODEL_PATH = Path(
    os.getenv("TRIAGE_MODEL_PATH", str(APP_DIR / "ml" / "models" / "triage_bayes.joblib"))
)

DEFAULT_LANG = os.getenv("TRIAGE_DEFAULT_LANG", "pt")
DEFAULT_SLA_HOURS = int(os.getenv("TRIAGE_SLA_HOURS", "24"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
