from enum import Enum
from pydantic import BaseModel
from typing import Optional

# Persisted credential records (one JSON object per file)

class AdminCredential(BaseModel):
    adminId: str
    passwordHash: str
    created: str

class ClientCredential(BaseModel):
    userId: str
    passwordHash: str
    created: Optional[str] = None
    revived: Optional[str] = None  # set instead of created on the /load path

class Role(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"

class AuthOutcome(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"
    REJECTED = "rejected"

class Admission(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_ACTIVE = "already_active"

# Wire literals, one line each

PROMPT_IDENTITY = "Enter User ID:"
PROMPT_SECRET = "Enter Password:"

AUTH_OK_ADMIN = "Authentication successful (admin)."
AUTH_OK_CLIENT = "Authentication successful."
AUTH_ONE_CLIENT = "Only one client allowed at a time."
AUTH_FAILED = "Authentication failed."

SESSION_CLOSED = "Your session has been closed."

CMD_ADDUSER = "/adduser"
CMD_ARCHIVES = "/archives"
CMD_LOAD = "/load "

ARCHIVES_HEADER = "Available archives:"
ARCHIVES_NONE = "No archives found."
ARCHIVE_LOADING = "Loading archive..."
ARCHIVE_NOT_FOUND = "Archive not found."
ARCHIVE_LOAD_FAILED = "Failed to load archive."
ROTATE_FAILED = "Credential rotation failed."
REVIVE_FAILED = "Credential revival failed."

def credential_lines(header: str, identity: str, secret: str) -> list:
    return [header, f"User ID: {identity}", f"Password: {secret}"]

def new_credentials_notice(identity: str, secret: str) -> list:
    return credential_lines("New client credentials:", identity, secret)

def revived_credentials_notice(identity: str, secret: str) -> list:
    return credential_lines("Revived credentials:", identity, secret)

def chat_line(identity: str, message: str) -> str:
    return f"{identity}: {message}"
