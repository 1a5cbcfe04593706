import os

import flet as ft

from gradetrackr.config.logging_config import configure_logging
from gradetrackr.services.appwrite_service import AppwriteService, AppwriteServiceError
from gradetrackr.services.feedback_service import FeedbackService
from gradetrackr.services.functions_service import FunctionServiceError
from gradetrackr.state.app_state import app_state
from gradetrackr.state.tracker_state import TrackerState
from gradetrackr.ui.views.dashboard_view import build_dashboard_view
from gradetrackr.ui.views.feedback_view import build_feedback_view
from gradetrackr.ui.views.login_view import build_login_view
from gradetrackr.ui.views.update_password_view import build_update_password_view
from gradetrackr.ui.views.whatif_view import build_whatif_view


def main(page: ft.Page) -> None:
    page.title = "GradeTrackr"
    services = {}

    def show(view: ft.View) -> None:
        page.views.clear()
        page.views.append(view)
        page.update()

    def show_login() -> None:
        app_state.sign_out()
        show(
            build_login_view(
                page,
                app_state,
                on_authenticated=show_dashboard,
                on_reset_password=lambda: show(build_update_password_view(page, on_done=show_login)),
            )
        )

    def show_dashboard() -> None:
        if app_state.tracker is None:
            try:
                service = AppwriteService.from_settings()
                services["feedback"] = FeedbackService.from_settings()
            except (AppwriteServiceError, FunctionServiceError) as exc:
                page.views.clear()
                page.views.append(ft.View(route="/error", controls=[ft.Text(f"Configuration error: {exc}")]))
                page.update()
                return
            app_state.tracker = TrackerState(service, app_state.session.uid)
            app_state.tracker.load()
        show(
            build_dashboard_view(
                page,
                app_state,
                on_what_if=lambda: show(build_whatif_view(page, app_state, on_back=show_dashboard)),
                on_feedback=lambda: show(
                    build_feedback_view(page, app_state, services["feedback"], on_back=show_dashboard)
                ),
                on_logout=show_login,
            )
        )

    show_login()


def run() -> None:
    configure_logging()
    web_mode = os.getenv("GRADETRACKR_WEB", "0") == "1"
    ft.app(
        target=main,
        view=ft.AppView.WEB_BROWSER if web_mode else ft.AppView.FLET_APP,
        port=int(os.getenv("PORT", "8550")),
    )


if __name__ == "__main__":
    run()
