"""
PDF Annotator - minimal toolbar around the annotator component.

Run with: python example.py /path/to/file.pdf
"""

import logging
import sys
from pathlib import Path

import flet as ft

from flet_pdf_annotator import AnnotatorDocument, LoadError, PdfAnnotator, SaveError, Tool

COLORS = {
    "bg": "#000000",
    "surface": "#0a0a0a",
    "surface_hover": "#171717",
    "border": "#262626",
    "text": "#ededed",
    "text_secondary": "#a1a1a1",
    "text_muted": "#525252",
    "accent": "#3390ff",
}

TOOLS = [
    (Tool.NONE, ft.Icons.PAN_TOOL_OUTLINED, "Pan"),
    (Tool.TEXT, ft.Icons.TEXT_FIELDS, "Text"),
    (Tool.HIGHLIGHT, ft.Icons.BORDER_COLOR_OUTLINED, "Highlight"),
    (Tool.UNDERLINE, ft.Icons.FORMAT_UNDERLINED, "Underline"),
    (Tool.DRAW, ft.Icons.DRAW_OUTLINED, "Draw"),
]


def main(page: ft.Page):
    page.title = "PDF Annotator"
    page.padding = 0
    page.bgcolor = COLORS["bg"]
    page.theme_mode = ft.ThemeMode.DARK

    source = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("sample.pdf")
    try:
        document = AnnotatorDocument(source)
    except LoadError as e:
        page.add(ft.Text(f"Could not open {source}: {e}", color="#f87171"))
        return

    status = ft.Text("", size=12, color=COLORS["text_muted"])
    page_text = ft.Text("1", size=13, color=COLORS["text"], weight=ft.FontWeight.W_500)

    def show_status(message: str):
        status.value = message
        if status.page:
            status.update()

    def update_page_info(index: int):
        page_text.value = f"{index + 1}"
        if page_text.page:
            page_text.update()

    # Text tool: ask for the text, then place it where the user tapped
    def on_tapped(x: float, y: float, page_index: int):
        field = ft.TextField(autofocus=True, hint_text="Annotation text")

        def close(e):
            dialog.open = False
            page.update()

        def add(e):
            annotator.add_text_annotation(page_index, x, y, field.value or "")
            close(e)

        dialog = ft.AlertDialog(
            title=ft.Text("Add text"),
            content=field,
            actions=[
                ft.TextButton("Cancel", on_click=close),
                ft.TextButton("Add", on_click=add),
            ],
        )
        page.open(dialog)

    annotator = PdfAnnotator(
        document.session,
        view_width=720,
        show_page_numbers=True,
        on_tapped=on_tapped,
        on_change=lambda: show_status(f"{len(document.session.store)} annotations"),
        on_page_change=update_page_info,
    )

    def on_save(e):
        target = source.with_name(f"{source.stem}_annotated.pdf")
        future = document.session.save_async()

        def done(f):
            try:
                target.write_bytes(f.result())
                show_status(f"Saved to {target.name}")
            except (SaveError, OSError) as err:
                show_status(f"Save failed: {err}")

        future.add_done_callback(done)

    def icon_btn(icon, on_click, tooltip=None, active=False):
        def on_hover(e):
            e.control.bgcolor = (
                COLORS["surface_hover"] if e.data == "true" or active else None
            )
            if e.control.page:
                e.control.update()

        return ft.Container(
            content=ft.Icon(
                icon, size=16, color=COLORS["text"] if active else COLORS["text_secondary"]
            ),
            width=32,
            height=32,
            border_radius=6,
            alignment=ft.alignment.center,
            bgcolor=COLORS["surface_hover"] if active else None,
            on_click=on_click,
            tooltip=tooltip,
            on_hover=on_hover,
        )

    def group(controls):
        return ft.Container(
            content=ft.Row(controls, spacing=0),
            bgcolor=COLORS["surface"],
            border=ft.border.all(1, COLORS["border"]),
            border_radius=8,
            padding=4,
            margin=ft.margin.only(left=8),
        )

    toolbar_row = ft.Ref[ft.Row]()

    def select_tool(tool: Tool):
        annotator.set_tool(tool)
        rebuild_toolbar()

    def rebuild_toolbar():
        toolbar_row.current.controls = build_toolbar_controls()
        toolbar_row.current.update()

    def build_toolbar_controls():
        return [
            ft.Container(expand=True),
            group(
                [
                    icon_btn(icon, lambda e, t=tool: select_tool(t), label, annotator.tool is tool)
                    for tool, icon, label in TOOLS
                ]
            ),
            group(
                [
                    icon_btn(ft.Icons.UNDO, lambda e: annotator.undo(), "Undo"),
                    icon_btn(ft.Icons.REDO, lambda e: annotator.redo(), "Redo"),
                    icon_btn(ft.Icons.DELETE_OUTLINE, lambda e: annotator.clear(), "Clear"),
                ]
            ),
            group(
                [
                    icon_btn(ft.Icons.CHEVRON_LEFT, lambda e: annotator.previous_page(), "Previous"),
                    ft.Container(
                        content=ft.Row(
                            [
                                page_text,
                                ft.Text(f"/ {document.page_count}", size=13, color=COLORS["text_muted"]),
                            ],
                            spacing=4,
                        ),
                        padding=ft.padding.symmetric(horizontal=8),
                    ),
                    icon_btn(ft.Icons.CHEVRON_RIGHT, lambda e: annotator.next_page(), "Next"),
                ]
            ),
            group(
                [
                    icon_btn(ft.Icons.REMOVE_ROUNDED, lambda e: annotator.zoom_out(), "Zoom out"),
                    icon_btn(ft.Icons.ADD_ROUNDED, lambda e: annotator.zoom_in(), "Zoom in"),
                ]
            ),
            group([icon_btn(ft.Icons.SAVE_OUTLINED, on_save, "Save a copy")]),
            ft.Container(expand=True),
        ]

    toolbar = ft.Container(
        content=ft.Row(
            build_toolbar_controls(),
            ref=toolbar_row,
            alignment=ft.MainAxisAlignment.CENTER,
        ),
        padding=ft.padding.symmetric(horizontal=24, vertical=12),
        border=ft.border.only(bottom=ft.BorderSide(1, COLORS["border"])),
    )

    content = ft.Container(
        content=annotator.control,
        alignment=ft.alignment.top_center,
        padding=32,
        bgcolor=COLORS["bg"],
        expand=True,
    )

    footer = ft.Container(content=status, padding=ft.padding.symmetric(horizontal=24, vertical=6))

    page.on_disconnect = lambda e: document.close()
    page.add(ft.Column([toolbar, content, footer], spacing=0, expand=True))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    ft.app(target=main)
