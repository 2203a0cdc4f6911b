"""
constants.py – Shared labels, limits, and provider defaults.
"""

# ── Image normalisation ───────────────────────────────────────
# Longest edge (px) sent upstream; larger photos are scaled down.
MAX_IMAGE_DIMENSION = 1600
JPEG_QUALITY = 80
NORMALIZED_MIME_TYPE = "image/jpeg"

# ── Data URIs ─────────────────────────────────────────────────
DATA_URI_PATTERN = r"^data:([^;]+);base64,(.+)$"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
FALLBACK_MIME_TYPE = "application/octet-stream"

# ── Gemini defaults ───────────────────────────────────────────
DEFAULT_GEMINI_MODEL = "gemini-3-pro-preview"
GEMINI_TEMPERATURE = 0.1
GEMINI_RESPONSE_MIME_TYPE = "application/json"

# ── HTTP ──────────────────────────────────────────────────────
DEFAULT_API_URL = "http://localhost:8000"
ANALYZE_PATH = "/api/analyze"
HEALTH_PATH = "/api/health"

MSG_MISSING_IMAGE = "Missing image in request body"
MSG_EMPTY_RESPONSE = "AI response empty"
MSG_INTERNAL_ERROR = "Internal Server Error"

# Shown to the end user for every failed analysis; details stay in the log.
MSG_ANALYSIS_FAILED = (
    "Errore durante l'analisi. Verifica che lo storico consumi "
    "e il dettaglio fasce siano leggibili."
)

# ── Units ─────────────────────────────────────────────────────
UNIT_GAS = "smc"
UNIT_ELECTRICITY = "kWh"
UNIT_EURO = "€"
UNIT_EURO_PER_MONTH = "€/mese"

# ── CSV export ────────────────────────────────────────────────
CSV_FILENAME_PREFIX = "Analisi_Dettagliata_"
CSV_HEADER = ["Categoria", "Parametro", "Valore", "Unita"]
CSV_HISTORY_HEADER = ["Storico Mese", "Consumo Totale", "F1", "F2", "F3"]

# ── Input files ───────────────────────────────────────────────
IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
    ".heic": "image/heic",
}

ALLOWED_EXTENSIONS = set(IMAGE_MIME_TYPES.keys())
