from typing import Callable
import flet as ft

from gradetrackr.core.validation import MIN_PASSWORD_LENGTH
from gradetrackr.services.appwrite_service import AppwriteService, AppwriteServiceError
from gradetrackr.services.auth_service import AppwriteAuthService, AuthResult, AuthServiceError
from gradetrackr.state.app_state import AppState


def build_login_view(
    page: ft.Page,
    app_state: AppState,
    on_authenticated: Callable[[], None],
    on_reset_password: Callable[[], None],
) -> ft.View:
    name = ft.TextField(label="Name (sign up only)", width=350)
    email = ft.TextField(label="Email", width=350)
    password = ft.TextField(label="Password", password=True, can_reveal_password=True, width=350)
    feedback = ft.Text()

    def say(message: str, ok: bool = False) -> None:
        feedback.value = message
        feedback.color = ft.Colors.GREEN_400 if ok else ft.Colors.RED_400
        page.update()

    def start_session(result: AuthResult) -> None:
        session = app_state.session
        session.uid, session.email = result.uid, result.email
        session.session_secret, session.session_id = result.session_secret, result.session_id
        session.name = (name.value or "").strip() or None
        try:
            AppwriteService.from_settings().ensure_user_profile(result.uid, result.email)
        except AppwriteServiceError as exc:
            say(f"Could not initialize profile: {exc}")
            return
        on_authenticated()

    def submit(creating_account: bool) -> None:
        address, secret = (email.value or "").strip(), password.value or ""
        if not address or not secret:
            say("Email and password are required.")
            return
        if creating_account and len(secret) < MIN_PASSWORD_LENGTH:
            say(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
            return
        try:
            auth = AppwriteAuthService.from_settings()
            if creating_account:
                result = auth.sign_up(address, secret, name.value)
            else:
                result = auth.sign_in(address, secret)
        except AuthServiceError as exc:
            say(f"{'Sign up' if creating_account else 'Sign in'} failed: {exc}")
            return
        start_session(result)

    def send_reset_link(_):
        address = (email.value or "").strip()
        if not address:
            say("Enter your email to receive a reset link.")
            return
        try:
            AppwriteAuthService.from_settings().request_password_reset(address)
        except AuthServiceError as exc:
            say(f"Could not send reset link: {exc}")
            return
        say("Password reset link sent. Check your inbox.", ok=True)

    actions = ft.Row(
        alignment=ft.MainAxisAlignment.CENTER,
        controls=[
            ft.Button("Sign In", on_click=lambda _: submit(False)),
            ft.OutlinedButton("Sign Up", on_click=lambda _: submit(True)),
            ft.TextButton("Forgot password?", on_click=send_reset_link),
            ft.TextButton("Have a reset link?", on_click=lambda _: on_reset_password()),
        ],
    )

    return ft.View(
        route="/login",
        controls=[
            ft.AppBar(title=ft.Text("GradeTrackr - Login")),
            ft.Container(
                alignment=ft.Alignment.CENTER,
                padding=20,
                content=ft.Column(
                    horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                    controls=[
                        ft.Text("Welcome to GradeTrackr", size=30, weight=ft.FontWeight.BOLD),
                        ft.Text("Track your GPA, set a target and plan ahead."),
                        name,
                        email,
                        password,
                        actions,
                        feedback,
                    ],
                ),
            ),
        ],
    )
