"""Authentication service for the Arlo cloud.

Arlo login is a chain of calls, each gated on the previous one:

1. POST /auth with email + base64 password -> auth token
2. GET /getFactors -> registered MFA channels
3. pick the EMAIL factor whose label is the configured mailbox
4. POST /startAuth -> factorAuthCode (Arlo emails the one-time code)
5. poll the mailbox for the code (retried, mail delivery is not synchronous)
6. POST /finishAuth with the code -> MFA token
7. GET /validateAccessToken (diagnostic only)
8. GET /users/session/v2 -> session token used by every other call

Any stage failure aborts the chain. Only step 5 retries.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_fixed

from arlo_cloud.core import constants
from arlo_cloud.core.config import settings
from arlo_cloud.core.exceptions import (
    ArloBaseException,
    AuthenticationError,
    ConfigurationError,
    ParseError,
    RemoteError,
)
from arlo_cloud.core.helpers import b64encode_str, strings_equal_insensitive
from arlo_cloud.models.auth import (
    AuthToken,
    AuthTokenResponse,
    Credentials,
    MfaAuthResponse,
    MfaSubmitResult,
    SecondFactorChallenge,
    SecondFactorOption,
    SessionToken,
)
from arlo_cloud.services.http_transport import HttpTransport
from arlo_cloud.services.mailbox import MailboxScanner

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], data: Any, stage: str) -> ModelT:
    """Validate a response payload, mapping schema drift to ParseError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ParseError(
            f"Unexpected {stage} response",
            {"errors": e.errors(include_url=False)}
        )


class Authenticator:
    """
    Drives the Arlo MFA login end to end and yields a session token.

    Owns the credentials for the duration of login. The mailbox poll is the
    only retried stage: up to ``retry_attempts`` tries with a fixed
    ``retry_delay`` between failures, re-raising the last failure.
    """

    def __init__(
        self,
        credentials: Credentials,
        transport: HttpTransport,
        scanner: Optional[MailboxScanner] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """Initialize the authenticator."""
        self._credentials = credentials
        self._transport = transport
        self._scanner = scanner or MailboxScanner.from_credentials(credentials)
        self.retry_attempts = retry_attempts or settings.MFA_RETRY_ATTEMPTS
        self.retry_delay = settings.MFA_RETRY_DELAY if retry_delay is None else retry_delay
        self._sleep = sleep

    def _headers(self, authorization: Optional[str] = None) -> Dict[str, str]:
        headers = dict(constants.BASE_HEADERS)
        if authorization:
            headers["Authorization"] = authorization
        return headers

    async def login(self) -> SessionToken:
        """
        Run the full login chain.

        Returns:
            Session token for all subsequent authenticated calls

        Raises:
            AuthenticationError: If the credentials are rejected
            ConfigurationError: If no MFA factor matches the mailbox
            RemoteError, ParseError, NotFoundError, TransportError: From the
                failing stage, unchanged
        """
        logger.info(f"Authenticating user: {self._credentials.arlo_user}")

        auth = await self.get_auth_token()
        factors = await self.get_factors(auth)
        factor = self.select_factor(factors)
        challenge = await self.request_code(factor, auth)
        code = await self.await_email_code()
        submitted = await self.submit_code(auth, challenge, code)
        await self.verify_auth_token(auth.authenticated, submitted.authorization)
        session = await self.new_session(submitted.token)

        session.session_expires = submitted.token_expires
        logger.info(f"Authentication successful for user id {session.user_id}")
        return session

    async def get_auth_token(self) -> AuthToken:
        """Exchange email + password for the MFA bootstrap token."""
        body = {
            "email": self._credentials.arlo_user,
            "password": self._credentials.encoded_password,
            "language": constants.AUTH_LANGUAGE,
            "EnvSource": constants.AUTH_ENV_SOURCE,
        }

        try:
            data = await self._transport.request(
                "POST", constants.GET_AUTH_TOKEN, self._headers(), body
            )
        except RemoteError as e:
            raise AuthenticationError(
                f"Authentication failed: {e.remote_message}",
                {"code": e.code}
            ) from e

        response = _parse(AuthTokenResponse, data, "auth token")
        logger.debug(f"Auth token issued at {response.authenticated}, mfa={response.mfa}")

        return AuthToken(
            token=b64encode_str(response.token),
            authenticated=response.authenticated,
            user_id=response.user_id
        )

    async def get_factors(self, auth: AuthToken) -> List[SecondFactorOption]:
        """List the MFA channels registered on the account."""
        data = await self._transport.request(
            "GET",
            f"{constants.GET_FACTORS}{auth.authenticated}",
            self._headers(auth.token)
        )
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ParseError("Unexpected factors response", {"response": str(data)[:200]})

        items = data.get("items") or []
        factors = [_parse(SecondFactorOption, item, "factors") for item in items]
        logger.debug(f"Account has {len(factors)} MFA factor(s)")
        return factors

    def select_factor(self, factors: List[SecondFactorOption]) -> SecondFactorOption:
        """
        Pick the factor whose label matches the configured mailbox.

        Raises:
            ConfigurationError: If no factor matches
        """
        email_user = self._credentials.email_user
        matches = [
            factor for factor in factors
            if strings_equal_insensitive(factor.display_name, email_user)
        ]

        if not matches:
            raise ConfigurationError(
                f"Unable to find a MFA option matching configured email address '{email_user}'",
                {"available": [factor.display_name for factor in factors]}
            )

        if len(matches) > 1:
            logger.warning(
                f"{len(matches)} MFA factors match '{email_user}' "
                f"({', '.join(f.factor_id for f in matches)}), using the first"
            )

        return matches[0]

    async def request_code(
        self,
        factor: SecondFactorOption,
        auth: AuthToken
    ) -> SecondFactorChallenge:
        """Ask Arlo to send the one-time code through the chosen factor."""
        logger.info(f"Requesting MFA code via {factor.factor_type} factor")
        data = await self._transport.request(
            "POST",
            constants.REQUEST_MFA_CODE,
            self._headers(auth.token),
            {
                "factorId": factor.factor_id,
                "factorType": factor.factor_type,
                "userId": auth.user_id,
            }
        )
        return _parse(SecondFactorChallenge, data, "start auth")

    async def await_email_code(self) -> str:
        """
        Poll the mailbox until the one-time code arrives.

        Raises:
            The last scanner error once every attempt has failed
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_fixed(self.retry_delay),
            before_sleep=before_sleep_log(logger, logging.INFO),
            sleep=self._sleep,
            reraise=True
        )

        async for attempt in retrying:
            with attempt:
                return await self._scanner.fetch_code()

    async def submit_code(
        self,
        auth: AuthToken,
        challenge: SecondFactorChallenge,
        code: str
    ) -> MfaSubmitResult:
        """Submit the one-time code and mark this client as a trusted browser."""
        data = await self._transport.request(
            "POST",
            constants.SUBMIT_MFA_CODE,
            self._headers(auth.token),
            {
                "factorAuthCode": challenge.factor_auth_code,
                "isBrowserTrusted": True,
                "otp": code,
            }
        )
        response = _parse(MfaAuthResponse, data, "finish auth")

        return MfaSubmitResult(
            token=response.token,
            authorization=b64encode_str(response.token),
            token_expires=response.expires_in
        )

    async def verify_auth_token(self, authenticated: int, authorization: str) -> Optional[Dict[str, Any]]:
        """Confirm the MFA token. Diagnostic only: failures are logged, not raised."""
        try:
            return await self._transport.request(
                "GET",
                f"{constants.VERIFY_AUTH}{authenticated}",
                self._headers(authorization)
            )
        except ArloBaseException as e:
            logger.warning(f"Access token validation failed, continuing anyway: {e.message}")
            return None

    async def new_session(self, token: str) -> SessionToken:
        """Mint the durable session."""
        data = await self._transport.request(
            "GET",
            constants.START_NEW_SESSION,
            self._headers(token)
        )
        return _parse(SessionToken, data, "session")
