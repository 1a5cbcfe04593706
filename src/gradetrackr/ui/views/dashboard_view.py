import mimetypes
from pathlib import Path
from typing import Callable, List
import flet as ft

from gradetrackr.core.goal import format_difference, format_progress
from gradetrackr.core.gpa import format_average, format_credits
from gradetrackr.core.models import Course, ScannedCourse, Semester
from gradetrackr.core.scales import SCALE_LABELS, GradingScale, grade_definitions, grades
from gradetrackr.core.validation import ValidationError
from gradetrackr.services.functions_service import FunctionServiceError
from gradetrackr.services.scan_service import ScanService, ScanServiceError
from gradetrackr.state.app_state import AppState


def _build_bar(progress_percent: float) -> ft.Container:
    width = max(4, int(260 * progress_percent / 100))
    return ft.Container(width=width, height=12, bgcolor=ft.Colors.BLUE_400, border_radius=6)


def build_dashboard_view(
    page: ft.Page,
    app_state: AppState,
    on_what_if: Callable[[], None],
    on_feedback: Callable[[], None],
    on_logout: Callable[[], None],
) -> ft.View:
    tracker = app_state.tracker
    status = ft.Text(color=ft.Colors.RED_400)
    cgpa_text = ft.Text(size=28, weight=ft.FontWeight.BOLD)
    credits_text = ft.Text()
    scale_table = ft.Column(spacing=2)
    goal_column = ft.Column(spacing=6)
    semesters_column = ft.Column(spacing=10)

    semester_name = ft.TextField(label="Semester name", hint_text="e.g. 100 Level - First", width=320)
    scan_path = ft.TextField(label="Results image (optional path)", width=420)
    target_field = ft.TextField(label="Target CGPA", width=160)
    scanned: List[ScannedCourse] = []

    scale_picker = ft.Dropdown(
        width=300,
        label="Grading scale",
        value=tracker.scale.value,
        options=[ft.dropdown.Option(scale.value, SCALE_LABELS[scale]) for scale in GradingScale],
    )

    def notify(message: str, is_error: bool) -> None:
        status.value = message
        status.color = ft.Colors.RED_400 if is_error else ft.Colors.GREEN_400

    tracker.notify = notify

    def render_summary() -> None:
        cgpa_text.value = f"CGPA: {format_average(tracker.cgpa)} / {tracker.max_cgpa:.1f}"
        credits_text.value = f"Total credits: {format_credits(tracker.total_credits)}"
        scale_table.controls = [
            ft.Text(f"{d.grade} ({d.range}) = {d.points:.1f}") for d in grade_definitions(tracker.scale)
        ]

    def render_goal() -> None:
        goal_column.controls.clear()
        progress = tracker.goal_progress()
        if progress is None:
            goal_column.controls.append(ft.Text("No target set yet."))
            return
        goal_column.controls.extend(
            [
                ft.Text(f"Target: {format_average(progress.target)}  Difference: {format_difference(progress.difference)}"),
                ft.Row(
                    controls=[
                        _build_bar(progress.progress_percent),
                        ft.Text(format_progress(progress.progress_percent)),
                    ]
                ),
                ft.Text(
                    "Congratulations! You've reached your goal!"
                    if progress.reached
                    else f"Keep working towards your goal of {format_average(progress.target)}"
                ),
            ]
        )

    def course_row(semester: Semester, course: Course) -> ft.Control:
        name = ft.TextField(value=course.name, width=220, dense=True)
        credits = ft.TextField(value=f"{course.credit_hours:g}", width=80, dense=True)
        grade = ft.Dropdown(
            width=100,
            dense=True,
            value=course.grade,
            options=[ft.dropdown.Option(g) for g in grades(tracker.scale)],
        )
        confirm = ft.Row(visible=False)

        def on_save(_):
            try:
                tracker.update_course(semester.id, course.id, name.value, credits.value, grade.value)
            except ValidationError as exc:
                notify(str(exc), True)
            render()

        def on_delete(_):
            tracker.delete_course(semester.id, course.id, confirmed=True)
            render()

        def ask_delete(_):
            confirm.visible = True
            page.update()

        confirm.controls = [
            ft.Text("Delete this course?"),
            ft.TextButton("Yes, delete", on_click=on_delete),
        ]
        return ft.Row(
            controls=[
                name,
                credits,
                grade,
                ft.TextButton("Save", on_click=on_save),
                ft.TextButton("Delete", on_click=ask_delete),
                confirm,
            ]
        )

    def semester_card(semester: Semester) -> ft.Control:
        title = ft.TextField(value=semester.name, width=260, dense=True)
        new_name = ft.TextField(label="Course", width=200, dense=True)
        new_credits = ft.TextField(label="Credits", value="3", width=80, dense=True)
        new_grade = ft.Dropdown(
            width=100,
            dense=True,
            value=grades(tracker.scale)[0],
            options=[ft.dropdown.Option(g) for g in grades(tracker.scale)],
        )
        confirm = ft.Row(visible=False)

        def on_rename(_):
            try:
                tracker.rename_semester(semester.id, title.value)
            except ValidationError as exc:
                notify(str(exc), True)
            render()

        def on_add_course(_):
            try:
                tracker.add_course(semester.id, new_name.value, new_credits.value, new_grade.value)
            except ValidationError as exc:
                notify(str(exc), True)
            render()

        def on_delete(_):
            tracker.delete_semester(semester.id, confirmed=True)
            render()

        def ask_delete(_):
            confirm.visible = True
            page.update()

        confirm.controls = [
            ft.Text("Delete this semester and all its courses? This cannot be undone."),
            ft.TextButton("Yes, delete", on_click=on_delete),
        ]

        courses = [course_row(semester, course) for course in semester.courses]
        if not courses:
            courses = [ft.Text("No courses yet")]

        return ft.Card(
            content=ft.Container(
                padding=12,
                content=ft.Column(
                    controls=[
                        ft.Row(
                            controls=[
                                title,
                                ft.TextButton("Rename", on_click=on_rename),
                                ft.Text(f"GPA {format_average(semester.gpa)}", weight=ft.FontWeight.BOLD),
                                ft.Text(f"{format_credits(semester.total_credits)} credits"),
                                ft.TextButton("Delete", on_click=ask_delete),
                            ]
                        ),
                        confirm,
                        *courses,
                        ft.Row(
                            controls=[
                                new_name,
                                new_credits,
                                new_grade,
                                ft.Button("Add Course", on_click=on_add_course),
                            ]
                        ),
                    ]
                ),
            )
        )

    def render_semesters() -> None:
        semesters_column.controls = [semester_card(semester) for semester in tracker.semesters]
        if not tracker.semesters:
            semesters_column.controls = [ft.Text("No semesters yet. Add your first one above.")]

    def render() -> None:
        render_summary()
        render_goal()
        render_semesters()
        page.update()

    def on_scan(_):
        path = Path((scan_path.value or "").strip())
        if not path.is_file():
            notify("Select an image file to scan.", True)
            page.update()
            return
        mime_type = mimetypes.guess_type(path.name)[0] or ""
        try:
            scanned[:] = ScanService.from_settings().scan_image(path.read_bytes(), mime_type)
            notify(f"Found {len(scanned)} courses. Name the semester and add it to import them.", False)
        except (ScanServiceError, FunctionServiceError) as exc:
            notify(str(exc), True)
        page.update()

    def on_add_semester(_):
        try:
            added = tracker.add_semester(semester_name.value, scanned)
        except ValidationError as exc:
            notify(str(exc), True)
            page.update()
            return
        if added is not None:
            semester_name.value = ""
            scan_path.value = ""
            scanned.clear()
        render()

    def on_save_goal(_):
        try:
            tracker.save_goal(target_field.value)
        except ValidationError as exc:
            notify(str(exc), True)
        render()

    def on_scale_change(_):
        tracker.set_grading_scale(GradingScale(scale_picker.value))
        scale_picker.value = tracker.scale.value
        render()

    scale_picker.on_change = on_scale_change
    if tracker.goal is not None:
        target_field.value = f"{tracker.goal.target_cgpa:.2f}"
    render_summary()
    render_goal()
    render_semesters()

    return ft.View(
        route="/dashboard",
        controls=[
            ft.AppBar(
                title=ft.Text("GradeTrackr - Dashboard"),
                actions=[
                    ft.TextButton("What-if", on_click=lambda _: on_what_if()),
                    ft.TextButton("Feedback", on_click=lambda _: on_feedback()),
                    ft.TextButton("Log out", on_click=lambda _: on_logout()),
                ],
            ),
            ft.Container(
                padding=20,
                content=ft.Column(
                    scroll=ft.ScrollMode.AUTO,
                    controls=[
                        cgpa_text,
                        credits_text,
                        status,
                        scale_picker,
                        scale_table,
                        ft.Divider(),
                        ft.Text("Goal", size=20, weight=ft.FontWeight.BOLD),
                        goal_column,
                        ft.Row(controls=[target_field, ft.Button("Save Goal", on_click=on_save_goal)]),
                        ft.Divider(),
                        ft.Text("Add Semester", size=20, weight=ft.FontWeight.BOLD),
                        semester_name,
                        ft.Row(controls=[scan_path, ft.OutlinedButton("Scan Results", on_click=on_scan)]),
                        ft.Button("Add Semester", on_click=on_add_semester),
                        ft.Divider(),
                        ft.Text("Semesters", size=20, weight=ft.FontWeight.BOLD),
                        semesters_column,
                    ],
                ),
            ),
        ],
    )
