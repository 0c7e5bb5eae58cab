"""QSS stylesheet and phase colours for FlowTimer."""

from __future__ import annotations

from ..timer.engine import Phase

# ── phase colours (ring gradient pairs) ──────────────────────────────────
#    Each phase maps to (primary, secondary) for the conical gradient.

PHASE_COLORS: dict[Phase, tuple[str, str]] = {
    Phase.RUNNING: ("#FBBF24", "#F59E0B"),   # amber
    Phase.PAUSED:  ("#6C7086", "#585B70"),   # desaturated gray
    Phase.IDLE:    ("#4A4A5E", "#3A3A4E"),   # neutral dim
}

# ── palette ──────────────────────────────────────────────────────────────

PALETTE: dict[str, str] = {
    "bg":           "#111827",
    "bg_secondary": "#1F2937",
    "surface":      "#374151",
    "accent":       "#60A5FA",
    "accent2":      "#93C5FD",
    "running":      "#FBBF24",
    "text":         "#F3F4F6",
    "text_muted":   "#9CA3AF",
    "success":      "#34D399",
    "danger":       "#F87171",
    "border":       "#374151",
}


# ── font resolution ───────────────────────────────────────────────────

_resolved_font: str | None = None


def resolve_font_family() -> str:
    """Detect the best available system font.  Must be called after
    QApplication is created (font database needs the app context)."""
    global _resolved_font
    if _resolved_font is None:
        try:
            from PyQt6.QtGui import QFontDatabase
            families = set(QFontDatabase.families())
            for candidate in ("SF Pro", "Inter", "Noto Sans", "Segoe UI"):
                if candidate in families:
                    _resolved_font = candidate
                    break
            else:
                _resolved_font = "Helvetica Neue"
        except Exception:
            _resolved_font = "Helvetica Neue"
    return _resolved_font


# ── QSS builder ───────────────────────────────────────────────────────


def build_stylesheet(palette: dict[str, str] | None = None) -> str:
    p = palette or PALETTE
    font = resolve_font_family()
    return f"""
    /* ── global ─────────────────────────────────── */
    QWidget {{
        background-color: {p['bg']};
        color: {p['text']};
        font-family: "{font}", "Helvetica Neue", Arial;
        font-size: 14px;
    }}

    /* ── buttons ─────────────────────────────────── */
    QPushButton {{
        background-color: {p['bg_secondary']};
        color: {p['text']};
        border: 1px solid {p['border']};
        border-radius: 8px;
        padding: 8px 18px;
        font-weight: 600;
    }}

    QPushButton:hover {{
        background-color: {p['surface']};
        border-color: {p['accent']};
    }}

    QPushButton:disabled {{
        color: {p['text_muted']};
        border-color: {p['bg_secondary']};
    }}

    QPushButton#primaryButton {{
        background-color: {p['success']};
        color: {p['bg']};
        border: none;
        font-size: 16px;
        padding: 12px 36px;
        border-radius: 10px;
        font-weight: 700;
    }}

    QPushButton#primaryButton:disabled {{
        background-color: {p['surface']};
        color: {p['text_muted']};
    }}

    QPushButton#pauseButton {{
        background-color: {p['running']};
        color: {p['bg']};
        border: none;
        font-size: 16px;
        padding: 12px 36px;
        border-radius: 10px;
        font-weight: 700;
    }}

    QPushButton#dangerButton {{
        background-color: transparent;
        color: {p['danger']};
        border: 1px solid {p['border']};
    }}

    QPushButton#dangerButton:hover {{
        background-color: {p['danger']};
        color: {p['bg']};
        border-color: {p['danger']};
    }}

    QPushButton#paletteButton {{
        font-size: 13px;
        padding: 6px 12px;
    }}

    /* ── inputs ──────────────────────────────────── */
    QLineEdit, QSpinBox, QComboBox {{
        background-color: {p['bg_secondary']};
        color: {p['text']};
        border: 1px solid {p['border']};
        border-radius: 6px;
        padding: 6px 10px;
    }}

    QLineEdit:focus, QSpinBox:focus, QComboBox:focus {{
        border-color: {p['accent']};
    }}

    /* ── tree / list ─────────────────────────────── */
    QTreeWidget, QListWidget {{
        background-color: {p['bg_secondary']};
        border: 1px solid {p['border']};
        border-radius: 8px;
        padding: 4px;
    }}

    QTreeWidget::item:selected, QListWidget::item:selected {{
        background-color: {p['surface']};
        color: {p['accent2']};
    }}

    /* ── tab widget ──────────────────────────────── */
    QTabWidget::pane {{
        border: none;
        background-color: transparent;
    }}

    QTabBar::tab {{
        background-color: transparent;
        color: {p['text_muted']};
        padding: 10px 24px;
        border: none;
        border-bottom: 2px solid transparent;
        font-weight: 600;
    }}

    QTabBar::tab:selected {{
        color: {p['accent']};
        border-bottom: 2px solid {p['accent']};
    }}

    /* ── frame / card ────────────────────────────── */
    QFrame#card {{
        background-color: {p['bg_secondary']};
        border: 1px solid {p['border']};
        border-radius: 12px;
    }}

    /* ── labels ──────────────────────────────────── */
    QLabel#sectionTitle {{
        font-size: 20px;
        font-weight: 700;
        color: {p['accent']};
    }}

    QLabel#mutedLabel {{
        font-size: 12px;
        color: {p['text_muted']};
    }}

    /* ── status bar ──────────────────────────────── */
    QStatusBar {{
        background-color: {p['bg']};
        color: {p['text_muted']};
        font-size: 12px;
        border-top: 1px solid {p['border']};
    }}
    """
