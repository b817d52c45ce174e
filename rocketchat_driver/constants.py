# =============================================================================
# Rocket.Chat Python Driver -- Constants
# =============================================================================
#
# Defaults mirror the environment-driven settings of the JS driver.
# =============================================================================

# -- Connection ---------------------------------------------------------------

DEFAULT_HOST = "localhost:3000"
CONNECTION_TIMEOUT = 20.0  # seconds

# -- Method cache -------------------------------------------------------------

ROOM_CACHE_SIZE = 10
ROOM_CACHE_MAX_AGE = 300.0  # seconds
DM_ROOM_CACHE_SIZE = 10
DM_ROOM_CACHE_MAX_AGE = 100.0  # seconds

# -- Server methods -----------------------------------------------------------

METHOD_ROOM_ID = "getRoomIdByNameOrId"
METHOD_ROOM_NAME = "getRoomNameById"
METHOD_DIRECT_MESSAGE = "createDirectMessage"
METHOD_JOIN_ROOM = "joinRoom"
METHOD_SEND_MESSAGE = "sendMessage"

ROOM_METHODS = (METHOD_ROOM_ID, METHOD_ROOM_NAME)

# -- Subscriptions ------------------------------------------------------------

MESSAGE_COLLECTION = "stream-room-messages"
MESSAGE_STREAM = "__my_messages__"

# -- Auth ---------------------------------------------------------------------

DEFAULT_USERNAME = "bot"
LDAP_OPTIONS = {"ldap": True, "ldapOptions": {}}

# -- Lifecycle events ---------------------------------------------------------

EVENT_CONNECTED = "connected"
EVENT_RECONNECTED = "reconnected"
EVENT_CHANGE = "change"

# -- Environment variables ----------------------------------------------------

ENV_URL = "ROCKETCHAT_URL"
ENV_AUTH = "ROCKETCHAT_AUTH"
ENV_USER = "ROCKETCHAT_USER"
ENV_PASSWORD = "ROCKETCHAT_PASSWORD"
ENV_ROOM_CACHE_SIZE = "ROOM_CACHE_SIZE"
ENV_ROOM_CACHE_MAX_AGE = "ROOM_CACHE_MAX_AGE"
ENV_DM_ROOM_CACHE_SIZE = "DM_ROOM_CACHE_SIZE"
ENV_DM_ROOM_CACHE_MAX_AGE = "DM_ROOM_CACHE_MAX_AGE"
