# Form session lifecycle

# Answers are being collected; submit may or may not be offered yet.
DRAFT = "DRAFT"

# Submission accepted by the backend; answers and files were cleared.
SUBMITTED = "SUBMITTED"

# Last submit attempt failed; answers are kept so the user can retry.
FAILED = "FAILED"


# Submission record lifecycle (backend side)

# Files stored and fields logged.
RECEIVED = "RECEIVED"

# Forwarding job queued for the help-desk webhook.
QUEUED = "QUEUED"

# Help-desk webhook acknowledged the request.
FORWARDED = "FORWARDED"

# Help-desk webhook rejected or could not be reached.
FORWARD_FAILED = "FORWARD_FAILED"


# Field kinds

TEXT = "text"
EMAIL = "email"
TEXTAREA = "textarea"
SELECT = "select"
FILE = "file"

FIELD_KINDS = {TEXT, EMAIL, TEXTAREA, SELECT, FILE}
