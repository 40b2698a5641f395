import hashlib

from schoolbooks.utils.http_client import HttpClient


class PwnedPasswordService:
    """k-anonymity lookup against the Pwned Passwords range API.

    Only the first five hex chars of the SHA-1 leave the process.
    ``check_password`` returns True when the password is NOT in a known breach.
    """

    def __init__(self, client: HttpClient, base_url: str = "https://api.pwnedpasswords.com"):
        self.client = client
        self.base_url = base_url.rstrip("/")

    def check_password(self, password: str) -> bool:
        digest = hashlib.sha1(password.encode("utf-8")).hexdigest().upper()
        prefix, suffix = digest[:5], digest[5:]
        body = self.client.get(f"{self.base_url}/range/{prefix}")
        return suffix not in body
