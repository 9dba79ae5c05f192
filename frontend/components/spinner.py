from html import escape


def render_spinner(label: str = "Loading...") -> str:
    """Индикатор загрузки"""
    return (
        f'<div class="spinner" role="status" aria-label="{escape(label)}">'
        '<span class="spinner-circle"></span>'
        f'<span class="sr-only">{escape(label)}</span>'
        "</div>"
    )
