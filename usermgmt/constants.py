USERS_API_URL = "http://localhost:3301/api/users"

# Every user record carries exactly these encrypted fields
CONFIDENTIAL_FIELDS = ("id", "name", "email", "role")

DEFAULT_SCHEME = "RSA-OAEP"
DEFAULT_DIGEST = "SHA-256"

# Stand-in for a field that could not be decrypted
UNDECRYPTABLE = "[undecryptable]"
