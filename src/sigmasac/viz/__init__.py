from .visualization import make_side_by_side, draw_matches, save_matches

__all__ = ["make_side_by_side", "draw_matches", "save_matches"]
