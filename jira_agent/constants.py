"""
Application-wide constants to replace magic numbers and strings.
"""
# Timeouts (in seconds)
HTTP_TIMEOUT = 30.0
HTTP_LONG_TIMEOUT = 60.0

# Story constraints
MAX_TOPIC_LENGTH_CHARS = 2000
JIRA_SUMMARY_MAX_CHARS = 255
DEFAULT_CRITERION = "Story is complete"
DEFAULT_SUBTASK_CRITERION = "Subtask is complete"

# Subtask fan-out bounds
MIN_SUBTASKS = 3
MAX_SUBTASKS = 5

# Approval gate
AFFIRMATIVE_ANSWERS = frozenset({"y", "yes"})

# Approval states
APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"

# Trace roles
ROLE_SYSTEM = "system"
ROLE_HUMAN = "human"
ROLE_ERROR = "error"

# Terminal outcomes
OUTCOME_CREATED = "created"
OUTCOME_REJECTED = "rejected"
OUTCOME_ERROR = "error"

# Deepgram endpoints
DEEPGRAM_LISTEN_URL = "https://api.deepgram.com/v1/listen"
DEEPGRAM_SPEAK_URL = "https://api.deepgram.com/v1/speak"
