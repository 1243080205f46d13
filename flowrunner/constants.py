"""Default values shared across the engine."""

DEFAULT_MAX_STEPS = 1000
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_TIME_ZONE = "UTC"
DEFAULT_CALENDAR_PROVIDER = "google"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_CHAT_MODEL = "openai:gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7

# Data bag keys written by steps that do not set ``outputKey``.
URL_CONTENT_KEY = "urlContent"
FILE_CONTENT_KEY = "fileContent"
EMAIL_RESULT_KEY = "emailResult"
EVENT_RESULT_KEY = "eventResult"
SMS_RESULT_KEY = "smsResult"
BOT_RESPONSE_KEY = "botResponse"
CONDITION_RESULT_KEY = "conditionResult"
API_RESPONSE_KEY = "apiResponse"

# Data bag keys read by steps.
USER_ID_KEY = "userId"
CONVERSATION_ID_KEY = "conversationId"
