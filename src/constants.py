"""
Shared constants used across multiple modules.
Single source of truth for the built-in food/exercise tables and the
fixed scoring configuration.
"""

# Built-in ingredients, macros per gram
INGREDIENTS_DB = [
    {"id": "1", "name": "Chicken Breast (Raw)", "macros": {"cal": 1.1, "p": 0.23, "c": 0.0, "f": 0.01}},
    {"id": "2", "name": "White Rice (Raw)", "macros": {"cal": 3.6, "p": 0.07, "c": 0.80, "f": 0.01}},
    {"id": "3", "name": "Almonds", "macros": {"cal": 5.79, "p": 0.21, "c": 0.22, "f": 0.49}},
    {"id": "4", "name": "Olive Oil", "macros": {"cal": 8.84, "p": 0.0, "c": 0.0, "f": 1.0}},
    {"id": "5", "name": "Oats (Raw)", "macros": {"cal": 3.89, "p": 0.16, "c": 0.66, "f": 0.06}},
    {"id": "6", "name": "Whey Isolate", "macros": {"cal": 3.7, "p": 0.90, "c": 0.01, "f": 0.01}},
]

EXERCISE_DB = [
    {"id": "str1", "name": "Barbell Squat", "type": "strength", "cal_per_rep": 0.35},
    {"id": "str2", "name": "Deadlift", "type": "strength", "cal_per_rep": 0.45},
    {"id": "str3", "name": "Bench Press", "type": "strength", "cal_per_rep": 0.25},
    {"id": "str4", "name": "Overhead Press", "type": "strength", "cal_per_rep": 0.20},
    {"id": "str5", "name": "Pull Up", "type": "strength", "cal_per_rep": 0.30},
]

MEAL_SLOTS = ("breakfast", "lunch", "dinner", "junk")
JUNK_SLOT = "junk"

# ─── Energy ────────────────────────────────────────────────
STEP_KCAL = 0.045           # kcal per step, empirical
RUN_METS = 10.0             # moderate running
ACTIVITY_MULTIPLIER = 1.2
GENDER_CONSTANT = {"male": 5.0, "female": -161.0}

# ─── Cognitive load ────────────────────────────────────────
SCREEN_ALLOWANCE_MIN = 120.0
SCREEN_FATIGUE_EXPONENT = 1.5
SCREEN_FATIGUE_SCALE = 10.0
LECTURE_WEIGHT = 0.85
STUDY_BONUS_RATE = 0.5
MIND_BASELINE = 70.0

# ─── Scoring curves ────────────────────────────────────────
SLEEP_TARGET_MIN = 480.0
SLEEP_SIGMA_MIN = 90.0
HYDRATION_DECAY = 50.0
STEPS_TARGET = 10_000.0
VOLUME_TARGET = 10_000.0

# Composite weights (sum to 1)
SCORE_WEIGHTS = {
    "sleep": 0.30,
    "nutrition": 0.25,
    "physical": 0.20,
    "mind": 0.15,
    "hydration": 0.10,
}

# Composite status bands from the dashboard header colours
STATUS_OPTIMAL = 80.0
STATUS_DEGRADED = 50.0
