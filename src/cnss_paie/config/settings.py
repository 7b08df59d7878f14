import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Paths
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(BASE_DIR / "output")))
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'cnss_paie.db'}")

# Ensure directories exist
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
(OUTPUT_DIR / "bds").mkdir(exist_ok=True)
(OUTPUT_DIR / "csv").mkdir(exist_ok=True)
(OUTPUT_DIR / "payslips").mkdir(exist_ok=True)
(OUTPUT_DIR / "cnss").mkdir(exist_ok=True)
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Application settings
DEBUG = os.getenv("DEBUG", "True").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

# Company registration (CNSS affiliation block)
CNSS_AFFILIATION_NUMBER = os.getenv("CNSS_AFFILIATION_NUMBER", "75605942")
COMPANY_NAME = os.getenv("COMPANY_NAME", "NEXTIS TECHNOLOGIES SARL")
COMPANY_ICE = os.getenv("COMPANY_ICE", "002589641000021")
COMPANY_ADDRESS = os.getenv("COMPANY_ADDRESS", "145 AV HASSAN II")
COMPANY_CITY = os.getenv("COMPANY_CITY", "CASABLANCA")
COMPANY_POSTAL_CODE = os.getenv("COMPANY_POSTAL_CODE", "20100")

# Rate table cache
RATE_TABLE_CACHE_TTL = int(os.getenv("RATE_TABLE_CACHE_TTL", "3600"))
RATE_TABLE_CACHE_SIZE = int(os.getenv("RATE_TABLE_CACHE_SIZE", "32"))

# Batch calculation
PAYROLL_WORKERS = int(os.getenv("PAYROLL_WORKERS", "4"))
