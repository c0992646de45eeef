import re
import datetime

# ANSI color codes
RESET = "\x1b[0m"
DIM = "\x1b[2m"
BRIGHT = "\x1b[1m"
RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
BLUE = "\x1b[34m"
MAGENTA = "\x1b[35m"
CYAN = "\x1b[36m"
GRAY = "\x1b[90m"
ORANGE = "\x1b[38;5;214m"

ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")
UUID_PATTERN = r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}"
REQUEST_ID_RE = re.compile(r"RequestId: ([a-f0-9-]+)")
UUID_RE = re.compile(UUID_PATTERN)
NUMBER_RE = re.compile(r"\b(\d+(?:\.\d+)?)([a-zA-Z]{1,3})?\b")
ERROR_WORD_RE = re.compile(r"\b\w*(?:fail|err)\w*\b", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")

NO_REQUEST_ID = "------"
NO_LEVEL = "   "

# first match wins
LEVEL_MARKERS = (
    ("ERROR", "ERR"),
    ("WARN", "WRN"),
    ("INFO", "INF"),
    ("DEBUG", "DBG"),
    ("START RequestId:", "STR"),
    ("END RequestId:", "END"),
    ("REPORT RequestId:", "RPT"),
    ("INIT_START", "INI"),
)

LEVEL_COLORS = {
    "ERR": RED,
    "WRN": YELLOW,
    "INF": GREEN,
    "DBG": BLUE,
    "STR": CYAN,
    "END": CYAN,
    "RPT": MAGENTA,
    "INI": BRIGHT + CYAN,
}

REQUEST_ID_PALETTE = (CYAN, GREEN, YELLOW, MAGENTA, BLUE)

# applied in order, each at most once
BOILERPLATE = (
    re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z\s+"),
    re.compile(UUID_PATTERN + r"\s+"),
    re.compile(r"RequestId: [a-f0-9-]+\s*"),
    re.compile(r"Version: \$LATEST\s*"),
    re.compile(r"START RequestId:\s*$"),
    re.compile(r"END RequestId:\s*$"),
    re.compile(r"REPORT RequestId:\s*"),
    re.compile(r"INFO\s+"),
    re.compile(r"ERROR\s+"),
    re.compile(r"WARN\s+"),
    re.compile(r"DEBUG\s+"),
)


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def extract_request_id(message: str) -> str:
    """
    Short correlation token: explicit "RequestId: <id>", else the first bare UUID.
    """
    match = REQUEST_ID_RE.search(message) or UUID_RE.search(message)
    if match:
        return match.group(match.lastindex or 0)[:6]
    return NO_REQUEST_ID


def extract_log_level(message: str) -> str:
    for marker, tag in LEVEL_MARKERS:
        if marker in message:
            return tag
    return NO_LEVEL


def request_id_color(request_id: str) -> str:
    return REQUEST_ID_PALETTE[sum(ord(c) for c in request_id) % len(REQUEST_ID_PALETTE)]


def log_level_color(level: str) -> str:
    return LEVEL_COLORS.get(level.strip(), GRAY)


def clean_message(message: str) -> str:
    for pattern in BOILERPLATE:
        message = pattern.sub("", message, count=1)
    return WHITESPACE_RE.sub(" ", message).strip()


def highlight_numbers(text: str) -> str:
    return NUMBER_RE.sub(lambda m: f"{CYAN}{m.group(1)}{RESET}{DIM}{m.group(2) or ''}", text)


def highlight_error_keywords(text: str) -> str:
    return ERROR_WORD_RE.sub(lambda m: f"{ORANGE}{m.group(0)}{RESET}{DIM}", text)


def local_time(timestamp: int) -> str:
    return datetime.datetime.fromtimestamp(timestamp / 1000).strftime("%H:%M:%S")


def format_log_entry(timestamp: int, message: str) -> str:
    """
    Render one event as `time  token  level  body` with ANSI colors.

    Pure: the output depends only on the two arguments (and the local timezone).
    """
    request_id = extract_request_id(message)
    level = extract_log_level(message)
    body = highlight_error_keywords(highlight_numbers(clean_message(message)))
    return (
        f"{GRAY}{local_time(timestamp)}{RESET} "
        f"{request_id_color(request_id)}{request_id}{RESET} "
        f"{log_level_color(level)}{level}{RESET} "
        f"{DIM}{body}{RESET}"
    )
