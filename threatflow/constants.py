WORKFLOW_KEY_PREFIX = "workflow_"
THREAT_KEY_PREFIX = "threat_"
NOTIFICATION_KEY_PREFIX = "notification_"

DEFAULT_PRIORITY = "normal"
DEFAULT_LIST_LIMIT = 50
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_CANCEL_REASON = "Workflow cancelled by user"

# Synthetic step name recorded when the step loop itself faults
WORKFLOW_EXECUTION_STEP = "workflow_execution"

DEFAULT_MODEL = "openai:gpt-4o-mini"
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.7
DEFAULT_HTTP_TIMEOUT = 30.0

CORRELATION_THRESHOLD = 0.3
CORRELATION_WINDOW_SECONDS = 24 * 60 * 60
