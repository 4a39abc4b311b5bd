"""Color palette (colorblind-safe defaults)."""

# RGB tuples
BG = (18, 18, 24)
WHITE_KEY = (240, 240, 240)
BLACK_KEY = (30, 30, 30)
TARGET_KEY = (66, 135, 245)
CORRECT_KEY = (80, 220, 100)
WRONG_KEY = (220, 60, 60)
HUD_TEXT = (220, 220, 220)
HUD_DIM = (140, 140, 150)
CHALLENGE_TEXT = (245, 166, 66)
