"""
Application-level constants for hardcoded protocol behavior.

These values define the wire protocol spoken with subscribers and should
NEVER be changed via environment variables. For configurable values
(ignore windows, queue sizes, log previews), see webhook_relay/settings.py.
"""

# ============================================================================
# Server -> client message types
# ============================================================================

MSG_CONNECTED = "connected"
MSG_REGISTERED = "registered"
MSG_PONG = "pong"
MSG_SESSION_CLEARED = "session_cleared"
MSG_ALERT = "alert"

# Registration modes echoed back in the "registered" acknowledgment
MODE_WEBHOOK = "webhook"
MODE_LEGACY = "legacy"


# ============================================================================
# WebSocket Protocol Constants
# ============================================================================

# Sent to clients on shutdown (RFC 6455 "going away")
WS_GOING_AWAY_CODE = 1001


# ============================================================================
# Logging
# ============================================================================

# Loki rejects log lines above this size
LOKI_MAX_LOG_SIZE_BYTES = 256 * 1024


# ============================================================================
# Test alert
# ============================================================================

# Payload relayed by GET /test so subscribers can verify their setup
TEST_ALERT: dict[str, object] = {
    "type": "LEVELS",
    "symbol": "TEST",
    "t1": 100.50,
    "t2": 101.00,
    "t3": 101.50,
    "eject": 99.50,
    "entry": 100.00,
    "source": "relay-test",
}
