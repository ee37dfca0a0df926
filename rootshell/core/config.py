"""
Configuration and constants for rootshell.
"""
import os
import shutil

# Privilege-escalation front-end and plain shell
SU_BINARY = os.environ.get("ROOTSHELL_SU") or shutil.which("su") or "su"
SH_BINARY = os.environ.get("ROOTSHELL_SH") or shutil.which("sh") or "sh"

# Unique marker for command completion detection.
# Written after every command as: echo "<MARKER_PREFIX> <id> $?"
MARKER_PREFIX = "__ROOTSHELL_DONE__"

# Output that means elevation was refused (matched case-insensitively)
DENIAL_PATTERNS = [
    r'permission denied',
    r'not allowed',
]

# Probe command and the token that proves we are root
ROOT_PROBE_COMMAND = "id"
ROOT_ID_TOKEN = "uid=0"

# Default wait for a single command (seconds)
DEFAULT_COMMAND_TIMEOUT = 30.0

# How long a root-permission probe result is trusted (seconds)
PERMISSION_EXPIRE_SECONDS = 10 * 60

# How long close() waits for the shell to exit after stdin is closed,
# and again after SIGTERM, before escalating (seconds)
CLOSE_GRACE_SECONDS = 1.0

# How long close() waits for the reader thread to notice EOF (seconds)
READER_JOIN_SECONDS = 2.0
