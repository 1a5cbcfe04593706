from typing import Callable
import flet as ft

from gradetrackr.core.gpa import format_average, format_credits, format_projection
from gradetrackr.core.scales import grade_definitions
from gradetrackr.state.app_state import AppState
from gradetrackr.state.whatif_state import WhatIfScratchpad


def build_whatif_view(page: ft.Page, app_state: AppState, on_back: Callable[[], None]) -> ft.View:
    tracker = app_state.tracker
    pad = WhatIfScratchpad(tracker.scale, tracker.cgpa, tracker.total_credits)

    current_cgpa = ft.TextField(label="Current CGPA", value=pad.current_cgpa, width=180)
    current_credits = ft.TextField(label="Total completed credits", value=pad.current_credits, width=220)
    courses_column = ft.Column(spacing=8)
    result_column = ft.Column(spacing=4)

    grade_options = [
        ft.dropdown.Option(d.grade, f"{d.grade} ({d.range}) - {d.points:.2f} pts") for d in grade_definitions(pad.scale)
    ]

    def render_result() -> None:
        pad.current_cgpa = current_cgpa.value or ""
        pad.current_credits = current_credits.value or ""
        projected = pad.projected()
        current_cgpa.error_text = pad.errors.get("current_cgpa")
        current_credits.error_text = pad.errors.get("current_credits")

        result_column.controls.clear()
        if projected is None:
            return
        delta = pad.delta()
        arrow = "↑" if delta > 0 else "↓" if delta < 0 else "="
        controls = [
            ft.Text(f"Current CGPA: {format_average(float(pad.current_cgpa))}"),
            ft.Text(f"Projected CGPA: {format_projection(projected)}", size=22, weight=ft.FontWeight.BOLD),
            ft.Text(f"{arrow} {format_average(abs(delta))}"),
            ft.Text(f"Total credits: {format_credits(pad.total_credits_after)}"),
        ]
        if pad.new_credits > 0:
            controls.append(ft.Text(f"+{format_credits(pad.new_credits)} new credits"))
        result_column.controls.extend(controls)

    def render() -> None:
        courses_column.controls.clear()
        if not pad.courses:
            courses_column.controls.append(ft.Text("Add your first course to see projections"))
        for index, course in enumerate(pad.courses, start=1):

            def make_handlers(course_id: str):
                def on_name(e):
                    pad.update_course(course_id, name=e.control.value)

                def on_credits(e):
                    pad.update_course(course_id, credit_hours=e.control.value)
                    refresh()

                def on_grade(e):
                    pad.update_course(course_id, grade=e.control.value)
                    refresh()

                def on_remove(_):
                    pad.remove_course(course_id)
                    refresh()

                return on_name, on_credits, on_grade, on_remove

            on_name, on_credits, on_grade, on_remove = make_handlers(course.id)
            courses_column.controls.append(
                ft.Row(
                    controls=[
                        ft.Text(str(index), width=24),
                        ft.TextField(value=course.name, hint_text="Course name (optional)", width=220, on_change=on_name),
                        ft.TextField(value=f"{course.credit_hours:g}", label="Credit hours", width=110, on_change=on_credits),
                        ft.Dropdown(value=course.grade, options=grade_options, width=240, on_change=on_grade),
                        ft.TextButton("Remove", on_click=on_remove),
                    ]
                )
            )

    def refresh() -> None:
        render()
        render_result()
        page.update()

    def on_add(_):
        pad.add_course()
        refresh()

    def on_reset(_):
        pad.reset()
        current_cgpa.value = ""
        current_credits.value = ""
        refresh()

    current_cgpa.on_blur = lambda _: refresh()
    current_credits.on_blur = lambda _: refresh()
    render()
    render_result()

    return ft.View(
        route="/what-if",
        controls=[
            ft.AppBar(title=ft.Text("GradeTrackr - What-if Calculator")),
            ft.Container(
                padding=20,
                content=ft.Column(
                    scroll=ft.ScrollMode.AUTO,
                    controls=[
                        ft.Row(controls=[ft.Button("Back to Dashboard", on_click=lambda _: on_back())]),
                        ft.Text("Predict your future CGPA by adding hypothetical courses"),
                        ft.Row(controls=[current_cgpa, current_credits]),
                        ft.Row(
                            controls=[
                                ft.Button("Add Course", on_click=on_add),
                                ft.OutlinedButton("Reset", on_click=on_reset),
                            ]
                        ),
                        courses_column,
                        ft.Divider(),
                        result_column,
                    ],
                ),
            ),
        ],
    )
