from typing import Callable
import flet as ft

from gradetrackr.core.validation import ValidationError
from gradetrackr.services.feedback_service import FeedbackService, FeedbackServiceError
from gradetrackr.state.app_state import AppState


def build_feedback_view(
    page: ft.Page,
    app_state: AppState,
    service: FeedbackService,
    on_back: Callable[[], None],
) -> ft.View:
    subject = ft.TextField(label="Subject", width=420)
    suggestion = ft.TextField(label="Your suggestion", multiline=True, min_lines=4, width=420)
    status = ft.Text(color=ft.Colors.RED_400)

    def set_status(message: str, is_error: bool = True) -> None:
        status.value = message
        status.color = ft.Colors.RED_400 if is_error else ft.Colors.GREEN_400
        page.update()

    def on_submit(_):
        session = app_state.session
        try:
            service.submit(subject.value, suggestion.value, session.name or "", session.email or "")
        except ValidationError as exc:
            set_status(str(exc))
            return
        except FeedbackServiceError as exc:
            set_status(str(exc))
            return
        subject.value = ""
        suggestion.value = ""
        set_status("Thanks! Your suggestion has been sent.", is_error=False)

    return ft.View(
        route="/feedback",
        controls=[
            ft.AppBar(title=ft.Text("GradeTrackr - Suggestions & Feedback")),
            ft.Container(
                padding=20,
                content=ft.Column(
                    controls=[
                        ft.Row(controls=[ft.Button("Back to Dashboard", on_click=lambda _: on_back())]),
                        ft.Text("Have an idea for a new feature or an improvement? Send it over."),
                        subject,
                        suggestion,
                        ft.Button("Submit", on_click=on_submit),
                        status,
                    ],
                ),
            ),
        ],
    )
