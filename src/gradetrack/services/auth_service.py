from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import requests
from requests import RequestException

from gradetrack.config.settings import settings

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    pass


# Firebase error codes mapped to messages fit for the user.
FRIENDLY_ERRORS: Dict[str, str] = {
    "EMAIL_EXISTS": "This email is already associated with an account.",
    "INVALID_EMAIL": "Please enter a valid email address.",
    "EMAIL_NOT_FOUND": "Invalid email or password.",
    "INVALID_PASSWORD": "Invalid email or password.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "Security Check: Please log out and log back in to verify it is you.",
    "INVALID_ID_TOKEN": "Your session has expired. Please log in again.",
}


@dataclass
class AuthResult:
    uid: str
    email: str
    id_token: str
    refresh_token: str
    display_name: str = ""


class FirebaseAuthService:
    SIGN_UP_PATH = "/accounts:signUp"
    LOGIN_PATH = "/accounts:signInWithPassword"
    UPDATE_PATH = "/accounts:update"
    OOB_CODE_PATH = "/accounts:sendOobCode"
    DELETE_PATH = "/accounts:delete"

    def __init__(self, api_key: str, endpoint: str = "https://identitytoolkit.googleapis.com/v1") -> None:
        if not api_key:
            raise AuthServiceError("Missing FIREBASE_API_KEY in environment")
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")

    @classmethod
    def from_settings(cls) -> "FirebaseAuthService":
        return cls(settings.firebase_api_key, settings.firebase_auth_endpoint)

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> AuthResult:
        payload = {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        }
        data = self._post(self.SIGN_UP_PATH, payload)
        result = self._to_result(data, email)
        if display_name and display_name.strip():
            self._post(
                self.UPDATE_PATH,
                {"idToken": result.id_token, "displayName": display_name.strip(), "returnSecureToken": False},
            )
            result.display_name = display_name.strip()
        return result

    def sign_in(self, email: str, password: str) -> AuthResult:
        payload = {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        }
        response = self._post(self.LOGIN_PATH, payload)
        return self._to_result(response, email)

    def send_password_reset(self, email: str) -> None:
        self._post(self.OOB_CODE_PATH, {"requestType": "PASSWORD_RESET", "email": email})

    def delete_account(self, id_token: str) -> None:
        if not id_token:
            raise AuthServiceError(FRIENDLY_ERRORS["INVALID_ID_TOKEN"])
        self._post(self.DELETE_PATH, {"idToken": id_token})

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.endpoint}{path}"
        try:
            res = requests.post(url, params={"key": self.api_key}, json=payload, timeout=15)
        except RequestException as exc:
            logger.warning("Auth request to %s failed: %s", path, exc)
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE") from exc
        try:
            data = res.json()
        except ValueError:
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE")

        if res.status_code >= 400:
            raise AuthServiceError(self._error_message(data))

        return data

    @staticmethod
    def _error_message(data: Dict[str, Any]) -> str:
        error = data.get("error") or {}
        code = str(error.get("message") or "AUTH_ERROR")
        # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
        key = code.split(":", 1)[0].strip()
        return FRIENDLY_ERRORS.get(key, code)

    @staticmethod
    def _to_result(data: Dict[str, Any], email: str) -> AuthResult:
        uid = str(data.get("localId") or "")
        if not uid:
            raise AuthServiceError("INVALID_FIREBASE_SESSION")
        return AuthResult(
            uid=uid,
            email=str(data.get("email") or email),
            id_token=str(data.get("idToken") or ""),
            refresh_token=str(data.get("refreshToken") or ""),
            display_name=str(data.get("displayName") or ""),
        )
