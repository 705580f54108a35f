"""
resume.py
---------
Purpose:
    Applicant resume flow endpoints.

    - POST /resume/send-link  email a single-use resume link for a saved draft
    - GET  /resume/exchange   consume the link, set the ``resume`` cookie, redirect
    - GET  /resume/get-draft  load the draft bound to the cookie (or ?token=)
    - GET  /resume/whoami     report the draft token bound to the cookie
    - POST /resume/logout     clear the cookie
"""

from fastapi import APIRouter, Cookie, Depends, Response
from fastapi.responses import RedirectResponse

from app.config import settings
from app.dependencies import get_resume_flow
from app.middleware.rate_limit_dependencies import rate_limit_send_link
from app.models.api.resume_request import SendResumeLinkRequest
from app.models.api.resume_response import AckResponse, WhoAmIResponse
from app.services.resume_service import (
    RESUME_COOKIE_NAME,
    ResumeFlowController,
    clear_resume_cookie,
    resume_redirect_url,
    set_resume_cookie,
)

router = APIRouter(prefix="/resume", tags=["Resume"])


@router.post("/send-link", response_model=AckResponse)
async def send_link(
    body: SendResumeLinkRequest,
    flow: ResumeFlowController = Depends(get_resume_flow),
    _rate: None = Depends(rate_limit_send_link),
):
    await flow.send_link(body.email, body.token)
    return AckResponse()


@router.get("/exchange")
async def exchange(
    rt: str | None = None,
    flow: ResumeFlowController = Depends(get_resume_flow),
):
    draft_token = await flow.exchange(rt)
    response = RedirectResponse(resume_redirect_url(settings.public_base_url()), status_code=302)
    set_resume_cookie(response, draft_token)
    return response


@router.get("/get-draft")
async def get_draft(
    token: str | None = None,
    resume: str | None = Cookie(default=None, alias=RESUME_COOKIE_NAME),
    flow: ResumeFlowController = Depends(get_resume_flow),
):
    return await flow.get_draft(query_token=token, cookie_token=resume)


@router.get("/whoami", response_model=WhoAmIResponse)
async def whoami(resume: str | None = Cookie(default=None, alias=RESUME_COOKIE_NAME)):
    return WhoAmIResponse(token=resume or None)


@router.post("/logout", response_model=AckResponse)
async def logout(response: Response):
    clear_resume_cookie(response)
    return AckResponse()
