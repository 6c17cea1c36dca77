"""Constants for the Arlo cloud client (URLs, fixed headers, event names)."""

API_DOMAIN = "myapi.arlo.com"
BASE_URL = "my.arlo.com"

# Web API (hmsweb)
API_ROOT = f"https://{API_DOMAIN}"
WEB = f"{API_ROOT}/hmsweb"
LOGOUT = f"{WEB}/logout"
WEB_CLIENT = f"{WEB}/client"
SUBSCRIBE = f"{WEB_CLIENT}/subscribe"
UNSUBSCRIBE = f"{WEB_CLIENT}/unsubscribe"
WEB_USERS = f"{WEB}/users"
DEVICES = f"{WEB_USERS}/devices"
NOTIFY = f"{DEVICES}/notify"
START_STREAM = f"{DEVICES}/startStream"
STOP_STREAM = f"{DEVICES}/stopStream"
SNAPSHOT = f"{DEVICES}/fullFrameSnapshot"
RENAME_DEVICE = f"{DEVICES}/renameDevice"
RESTART_DEVICE = f"{DEVICES}/restart"
START_NEW_SESSION = f"{WEB_USERS}/session/v2"

# MFA authentication API
AUTH_API = "https://ocapi-app.arlo.com/api"
GET_AUTH_TOKEN = f"{AUTH_API}/auth"
GET_FACTORS = f"{AUTH_API}/getFactors?data="
REQUEST_MFA_CODE = f"{AUTH_API}/startAuth"
SUBMIT_MFA_CODE = f"{AUTH_API}/finishAuth"
VERIFY_AUTH = f"{AUTH_API}/validateAccessToken?data="

# Values the vendor checks when fingerprinting requests; keep byte-for-byte.
USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 11_1_2 like Mac OS X) "
    "AppleWebKit/604.3.5 (KHTML, like Gecko) Mobile/15B202 NETGEAR/v1 (iOS Vuezone)"
)

BASE_HEADERS = {
    "Auth-Version": "2",
    "Content-Type": "application/json",
    "DNT": "1",
    "Origin": f"https://{BASE_URL}",
    "Referer": f"https://{BASE_URL}/",
    "TE": "Trailers",
    "Source": "arloCamWeb",
    "schemaVersion": "1",
    "User-Agent": USER_AGENT,
}

# Login request body constants
AUTH_LANGUAGE = "en"
AUTH_ENV_SOURCE = "prod"

# Mailbox search for the one-time code email
MFA_EMAIL_SUBJECT = "Your one-time authentication code from Arlo"
MFA_MAILBOX = "INBOX"

# Device types and states
DEVICE_TYPE_BASESTATION = "basestation"
DEVICE_TYPE_CAMERA = "camera"
DEVICE_TYPE_DOORBELL = "doorbell"
DEVICE_STATE_PROVISIONED = "provisioned"

# Event stream framing
EVENT_STREAM_PREFIX = "event: message\ndata: "
EVENT_STREAM_ACCEPT = "text/event-stream"
STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"
ACTION_LOGOUT = "logout"

# Properties that fan a notification out as a specialized alert
PROPERTY_BUTTON_PRESSED = "buttonPressed"
PROPERTY_MOTION_DETECTED = "motionDetected"

# Modes
MODE_DISARMED = "mode0"
MODE_ARMED = "mode1"

TRANSID_PREFIX = "web"
