from .canvas import RGBA, draw_hline, draw_rect, draw_vline, fill_rect, new_canvas
from .text import draw_text, text_size

__all__ = [
    "RGBA",
    "draw_hline",
    "draw_rect",
    "draw_text",
    "draw_vline",
    "fill_rect",
    "new_canvas",
    "text_size",
]
