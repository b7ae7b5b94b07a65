"""Push notification providers.

- FirebasePushProvider: Firebase Cloud Messaging multicast via firebase-admin
- FakePushProvider: in-memory provider for tests and local development

Providers return an OperationResult whose data holds the aggregate
``success_count``, ``failure_count``, ``message_ids`` and per-token ``errors``.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

import firebase_admin
import structlog
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging

from infrastructure.configuration import FirebaseSettings
from infrastructure.notifications.exceptions import ProviderConfigurationError
from infrastructure.operations import OperationResult

logger = structlog.get_logger()

FIREBASE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Tokens accepted by one FCM multicast request
FCM_MULTICAST_LIMIT = 500

# FCM errors worth retrying
_TRANSIENT_FIREBASE_ERRORS = (
    firebase_exceptions.UnavailableError,
    firebase_exceptions.InternalError,
    firebase_exceptions.DeadlineExceededError,
    firebase_exceptions.ResourceExhaustedError,
)
_CREDENTIAL_FIREBASE_ERRORS = (
    firebase_exceptions.UnauthenticatedError,
    firebase_exceptions.PermissionDeniedError,
)


def _multicast_result(
    success_count: int,
    failure_count: int,
    message_ids: List[str],
    errors: Dict[str, str],
) -> OperationResult:
    data = {
        "success_count": success_count,
        "failure_count": failure_count,
        "message_ids": message_ids,
        "errors": errors,
    }
    if success_count == 0 and failure_count > 0:
        return OperationResult.permanent_error(
            message="Push delivery failed for every token",
            error_code="ALL_TOKENS_FAILED",
            data=data,
        )
    return OperationResult.success(data=data, message="Push multicast sent")


class PushProvider(ABC):
    """Abstract multicast push provider."""

    name: str = "abstract"

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def send_multicast(
        self,
        tokens: List[str],
        title: Optional[str],
        body: Optional[str],
        data: Optional[Dict[str, str]] = None,
        image_url: Optional[str] = None,
    ) -> OperationResult:
        """Send one notification to many device tokens."""


class FirebasePushProvider(PushProvider):
    """Firebase Cloud Messaging provider.

    The Firebase app is initialized lazily on first send, under a named app so
    it does not clash with other firebase-admin users in the process.
    """

    name = "firebase"

    def __init__(self, settings: FirebaseSettings, app_name: str = "notification-center"):
        self.settings = settings
        self.app_name = app_name
        self._app: Optional[firebase_admin.App] = None
        self._lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _get_app(self) -> firebase_admin.App:
        with self._lock:
            if self._app is not None:
                return self._app
            try:
                self._app = firebase_admin.get_app(self.app_name)
            except ValueError:
                try:
                    cred = credentials.Certificate(
                        {
                            "type": "service_account",
                            "project_id": self.settings.project_id,
                            "client_email": self.settings.client_email,
                            "private_key": self.settings.private_key,
                            "token_uri": FIREBASE_TOKEN_URI,
                        }
                    )
                except ValueError as e:
                    raise ProviderConfigurationError(
                        f"Invalid Firebase credentials: {e}"
                    ) from e
                self._app = firebase_admin.initialize_app(
                    cred,
                    options={"projectId": self.settings.project_id},
                    name=self.app_name,
                )
                logger.info(
                    "firebase_app_initialized",
                    project_id=self.settings.project_id,
                    app_name=self.app_name,
                )
            return self._app

    def send_multicast(
        self,
        tokens: List[str],
        title: Optional[str],
        body: Optional[str],
        data: Optional[Dict[str, str]] = None,
        image_url: Optional[str] = None,
    ) -> OperationResult:
        """Send to every token, in batches of at most FCM_MULTICAST_LIMIT.

        A request-level failure before any batch was delivered is returned
        as is (transient failures stay retryable). Once a batch has been
        delivered, a failing batch only counts its tokens as failed.
        """
        if not self.is_configured:
            return OperationResult.configuration_error(
                message="Firebase credentials are not configured",
                error_code="FIREBASE_NOT_CONFIGURED",
            )

        try:
            app = self._get_app()
        except ProviderConfigurationError as e:
            logger.error("firebase_initialization_failed", error=str(e))
            return OperationResult.configuration_error(
                message=str(e),
                error_code="FIREBASE_INVALID_CREDENTIALS",
            )

        success_count = 0
        failure_count = 0
        message_ids: List[str] = []
        errors: Dict[str, str] = {}
        for start in range(0, len(tokens), FCM_MULTICAST_LIMIT):
            batch = tokens[start : start + FCM_MULTICAST_LIMIT]
            result = self._send_batch(app, batch, title, body, data, image_url)
            if result.is_success:
                success_count += result.data["success_count"]
                failure_count += result.data["failure_count"]
                message_ids.extend(result.data["message_ids"])
                errors.update(result.data["errors"])
                continue
            if success_count == 0:
                return result
            failure_count += len(batch)
            errors.update({token: result.message for token in batch})

        if failure_count:
            logger.warning(
                "firebase_multicast_partial_failure",
                success_count=success_count,
                failure_count=failure_count,
                batches=(len(tokens) + FCM_MULTICAST_LIMIT - 1) // FCM_MULTICAST_LIMIT,
            )

        return _multicast_result(success_count, failure_count, message_ids, errors)

    def _send_batch(
        self,
        app: firebase_admin.App,
        tokens: List[str],
        title: Optional[str],
        body: Optional[str],
        data: Optional[Dict[str, str]],
        image_url: Optional[str],
    ) -> OperationResult:
        try:
            message = messaging.MulticastMessage(
                tokens=tokens,
                notification=messaging.Notification(title=title, body=body, image=image_url),
                data=data or None,
            )
            response = messaging.send_each_for_multicast(message, app=app)
        except _TRANSIENT_FIREBASE_ERRORS as e:
            logger.warning("firebase_multicast_unavailable", error=str(e))
            return OperationResult.transient_error(
                message=f"Firebase unavailable: {e}", error_code="FIREBASE_UNAVAILABLE"
            )
        except _CREDENTIAL_FIREBASE_ERRORS as e:
            logger.error("firebase_credentials_rejected", error=str(e))
            return OperationResult.configuration_error(
                message=f"Firebase rejected credentials: {e}",
                error_code="FIREBASE_UNAUTHORIZED",
            )
        except firebase_exceptions.FirebaseError as e:
            logger.error("firebase_multicast_failed", error=str(e))
            return OperationResult.permanent_error(
                message=f"Firebase error: {e}", error_code="FIREBASE_ERROR"
            )
        except ValueError as e:
            # firebase-admin validates the message locally (token count, data types)
            logger.error("firebase_message_rejected", error=str(e))
            return OperationResult.permanent_error(
                message=f"Invalid push message: {e}", error_code="FIREBASE_INVALID_MESSAGE"
            )

        message_ids: List[str] = []
        errors: Dict[str, str] = {}
        for token, send_response in zip(tokens, response.responses):
            if send_response.success:
                message_ids.append(send_response.message_id)
            else:
                errors[token] = str(send_response.exception)

        return OperationResult.success(
            data={
                "success_count": response.success_count,
                "failure_count": response.failure_count,
                "message_ids": message_ids,
                "errors": errors,
            },
            message="Push batch sent",
        )


class FakePushProvider(PushProvider):
    """Records pushes in memory instead of sending them.

    Attributes:
        sent: Every multicast received, as dicts.
        failing_tokens: Tokens that report a per-token failure.
    """

    name = "fake"

    def __init__(self, failing_tokens: Optional[Iterable[str]] = None):
        self.sent: List[Dict] = []
        self.failing_tokens = set(failing_tokens or [])
        self._lock = threading.Lock()

    def send_multicast(
        self,
        tokens: List[str],
        title: Optional[str],
        body: Optional[str],
        data: Optional[Dict[str, str]] = None,
        image_url: Optional[str] = None,
    ) -> OperationResult:
        with self._lock:
            self.sent.append(
                {
                    "tokens": list(tokens),
                    "title": title,
                    "body": body,
                    "data": dict(data or {}),
                    "image_url": image_url,
                }
            )
            batch = len(self.sent)

        message_ids = [
            f"fake-{batch}-{index}"
            for index, token in enumerate(tokens)
            if token not in self.failing_tokens
        ]
        errors = {
            token: "Requested entity was not found."
            for token in tokens
            if token in self.failing_tokens
        }
        logger.debug("fake_push_sent", token_count=len(tokens), failures=len(errors))
        return _multicast_result(len(message_ids), len(errors), message_ids, errors)
