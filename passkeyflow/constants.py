"""Protocol defaults shared by the flows, the server and the CLI."""

CHALLENGE_BYTES = 32
MIN_CHALLENGE_BYTES = 16

DEFAULT_ORIGIN = "http://localhost:8080"
DEFAULT_RP_NAME = "passkeyflow-demo"
DEFAULT_TIMEOUT_MS = 60000
DEFAULT_DATA_DIR = "data"
DEFAULT_ATTESTATION = "direct"

# COSE identifiers: ES256 and RS256.
DEFAULT_ALGORITHMS = (-7, -257)

PUBLIC_KEY_CREDENTIAL_TYPE = "public-key"
USERS_COLLECTION = "users"
