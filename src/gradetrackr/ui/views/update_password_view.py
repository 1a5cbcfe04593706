from typing import Callable
import flet as ft

from gradetrackr.core.validation import ValidationError, validate_new_password
from gradetrackr.services.auth_service import AppwriteAuthService, AuthServiceError


def build_update_password_view(page: ft.Page, on_done: Callable[[], None]) -> ft.View:
    user_id = ft.TextField(label="User ID (from the reset link)", width=350)
    secret = ft.TextField(label="Secret (from the reset link)", width=350)
    password = ft.TextField(label="New password", password=True, can_reveal_password=True, width=350)
    confirm = ft.TextField(label="Confirm new password", password=True, can_reveal_password=True, width=350)
    status_text = ft.Text(color=ft.Colors.RED_400)

    def set_status(message: str, is_error: bool = True) -> None:
        status_text.value = message
        status_text.color = ft.Colors.RED_400 if is_error else ft.Colors.GREEN_400
        page.update()

    def on_submit(_):
        if not user_id.value or not secret.value:
            set_status("Invalid or expired reset link.")
            return
        try:
            new_password = validate_new_password(password.value, confirm.value)
            AppwriteAuthService.from_settings().complete_password_reset(
                user_id.value.strip(), secret.value.strip(), new_password
            )
        except ValidationError as exc:
            set_status(str(exc))
            return
        except AuthServiceError as exc:
            set_status(f"Could not update password: {exc}")
            return
        password.value = ""
        confirm.value = ""
        set_status("Password updated. You can now sign in.", is_error=False)

    return ft.View(
        route="/update-password",
        controls=[
            ft.AppBar(title=ft.Text("GradeTrackr - Update Password")),
            ft.Container(
                alignment=ft.Alignment.CENTER,
                padding=20,
                content=ft.Column(
                    horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                    controls=[
                        user_id,
                        secret,
                        password,
                        confirm,
                        ft.Row(
                            alignment=ft.MainAxisAlignment.CENTER,
                            controls=[
                                ft.Button("Update Password", on_click=on_submit),
                                ft.TextButton("Back to Sign In", on_click=lambda _: on_done()),
                            ],
                        ),
                        status_text,
                    ],
                ),
            ),
        ],
    )
