# Shared constants for the LanPush application

# --- Application Identification ---
APP_NAME = "LanPush"

# --- Networking ---
APP_PORT = 8080 # Default TCP port, shared by both transfer variants
BIND_HOST = "0.0.0.0" # Listen on all interfaces
FALLBACK_ADDRESS = "127.0.0.1" # Advertised when no interface qualifies
BUFFER_SIZE = 80 * 1024 # 80 KiB copy buffer for payloads
CONNECTION_TIMEOUT = 20.0 # Client connect timeout (seconds)
ACCEPT_POLL_INTERVAL = 0.5 # Accept loops wake up this often to check for stop
HANDLER_JOIN_TIMEOUT = 5.0 # How long close() waits for in-flight handlers

# --- Transfer Variants ---
PROTOCOL_HTTP = "http"     # POST /upload with the raw file as body
PROTOCOL_STREAM = "stream" # Length-prefixed binary frame over TCP
PROTOCOLS = (PROTOCOL_HTTP, PROTOCOL_STREAM)

# --- HTTP Variant ---
UPLOAD_PATH = "/upload"
FILE_NAME_HEADER = "X-File-Name"
FILE_NAME_ENCODING_HEADER = "X-File-Name-Encoding" # Opt-in: "percent" means X-File-Name is percent-encoded
PERCENT_ENCODING = "percent"

# --- Stream Variant ---
LENGTH_FORMAT = "<q" # 8 bytes, little-endian signed int64
MAX_FILE_NAME_BYTES = 4096 # Upper bound for a declared filename length
FILE_NAME_ENCODING = "utf-8"

# --- Interface Scoring ---
GATEWAY_BONUS = 10
WIFI_BONUS = 5
ETHERNET_BONUS = 5
VIRTUAL_PENALTY = 10
CLASS_C_PRIVATE_BONUS = 2 # 192.168.x.x
CLASS_A_PRIVATE_BONUS = 1 # 10.x.x.x
VIRTUAL_KEYWORDS = ("virtual", "wsl", "v-ethernet", "vmware", "pseudo", "loopback")

# --- Files ---
RECEIVED_DIR_NAME = "ReceivedFiles"         # Default save directory inside app data
GENERATED_NAME_PREFIX = "received_"         # received_<uuid>.dat when the peer sends no name
GENERATED_NAME_SUFFIX = ".dat"
PARTIAL_FILE_PREFIX = ".lanpush_"           # Temporary files while a payload is in flight
PARTIAL_FILE_SUFFIX = ".part"
DEFAULT_DOWNLOADS_DIR_NAME = "Downloads"

# --- Configuration ---
CONFIG_FILE_NAME = "config.ini"
LOG_FILE_NAME = "lanpush.log"
