"""Application constants."""

# Default exercise catalogue, seeded by the initial migration
DEFAULT_EXERCISES = [
    ("Bench Press", "Classic chest exercise performed lying on a bench", "chest"),
    ("Squat", "Fundamental lower body exercise", "legs"),
    ("Deadlift", "Compound movement targeting posterior chain", "back"),
    ("Overhead Press", "Shoulder pressing movement", "shoulders"),
    ("Pull-ups", "Bodyweight upper body pulling exercise", "back"),
    ("Dips", "Bodyweight tricep and chest exercise", "arms"),
    ("Plank", "Core stability exercise", "core"),
    ("Push-ups", "Bodyweight chest and tricep exercise", "chest"),
]

# Shown in place of a previous-performance entry when there is nothing to compare
NO_PREVIOUS_PLACEHOLDER = "-"

# Header used by callers to identify the acting user (auth lives outside this service)
USER_ID_HEADER = "X-User-Id"

RECENT_WORKOUTS_LIMIT = 5

# sets.weight is NUMERIC(5,2); anything at or above this does not fit the column
MAX_SET_WEIGHT = 1000
