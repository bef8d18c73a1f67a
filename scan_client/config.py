import os
from dotenv import load_dotenv

load_dotenv()

SCAN_API_URL = os.getenv("SCAN_API_URL", "http://localhost:8000")
# Placeholder owner until authentication exists; passed explicitly through ScanSession
SCAN_USER_ID = os.getenv("SCAN_USER_ID", "demo-user")
REQUEST_TIMEOUT = int(os.getenv("SCAN_REQUEST_TIMEOUT", 30))

OCR_LANG = os.getenv("OCR_LANG", "eng")
TESSERACT_CMD = os.getenv("TESSERACT_CMD")
OCR_TIMEOUT = int(os.getenv("OCR_TIMEOUT", 0))

# Index of the rear-facing camera, tried first
CAMERA_DEVICE = int(os.getenv("CAMERA_DEVICE", 0))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
