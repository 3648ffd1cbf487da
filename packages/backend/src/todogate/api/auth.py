"""Auth API — sign-up, sign-in, session lookup, sign-out.

Learn: These routes sit under /auth, which the route guard classifies as
the auth subsystem: no session is required to reach them, and they do
their own credential checks.

- POST /auth/sign-up/email → create a user account
- POST /auth/sign-in/email → email/password → session cookie + token
- GET  /auth/get-session   → the presented session, or null
- POST /auth/sign-out      → revoke the presented session, clear the cookie

If the verifier can't be built (no secret / base URL / database) every
route here answers 503 "Auth not available".
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from todogate.api.responses import success, success_message
from todogate.auth.credentials import CredentialService
from todogate.errors import AuthUnavailable
from todogate.schemas.auth import SessionRead, SignInRequest, SignUpRequest, UserRead

router = APIRouter(prefix="/auth")


def _credentials(request: Request) -> CredentialService:
    verifier = request.app.state.gate.verifier()
    if not isinstance(verifier, CredentialService):
        raise AuthUnavailable()
    return verifier


def _user_payload(user) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json", by_alias=True)


@router.post("/sign-up/email", status_code=201)
async def sign_up(body: SignUpRequest, creds: CredentialService = Depends(_credentials)):
    user = await creds.sign_up(body.email, body.name, body.password)
    return success(_user_payload(user), status_code=201)


@router.post("/sign-in/email")
async def sign_in(
    body: SignInRequest,
    request: Request,
    creds: CredentialService = Depends(_credentials),
):
    """Start a session. The token comes back in the body and as a cookie."""
    issued = await creds.sign_in(
        body.email,
        body.password,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    response = success({"token": issued.token, "user": _user_payload(issued.user)})
    response.set_cookie(
        creds.cookie_name,
        issued.token,
        expires=issued.session.expires_at,
        path="/",
        httponly=True,
        samesite="lax",
        secure=creds.base_url.startswith("https://"),
    )
    return response


@router.get("/get-session")
async def get_session(request: Request, creds: CredentialService = Depends(_credentials)):
    found = await creds.get_session(request.headers)
    if not found:
        return JSONResponse(content=None)
    session, user = found
    return {
        "session": SessionRead.model_validate(session).model_dump(mode="json", by_alias=True),
        "user": _user_payload(user),
    }


@router.post("/sign-out")
async def sign_out(request: Request, creds: CredentialService = Depends(_credentials)):
    await creds.sign_out(request.headers)
    response = success_message("Signed out")
    response.delete_cookie(creds.cookie_name, path="/")
    return response
