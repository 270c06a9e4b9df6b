from typing import Final

WORKOUT: Final[str] = "workout"
DIET: Final[str] = "diet"
PLAN_KINDS: Final[tuple[str, ...]] = (WORKOUT, DIET)

# Remote document store collections
PLAN_COLLECTIONS: Final[dict[str, str]] = {WORKOUT: "workoutPlans", DIET: "dietPlans"}
CATEGORY_COLLECTIONS: Final[dict[str, str]] = {WORKOUT: "categories", DIET: "dietCategories"}
FAVORITES_COLLECTION: Final[str] = "favorites"
# Field of the per-user favorites document holding each kind's ids
FAVORITES_FIELDS: Final[dict[str, str]] = {WORKOUT: "workouts", DIET: "diets"}

# Local cache keys for anonymous favorites
FAVORITES_CACHE_KEYS: Final[dict[str, str]] = {
    WORKOUT: "fitplanFavorites",
    DIET: "fitdeedFavoriteDietPlanIds",
}

PLACEHOLDER_IMAGE_URL: Final[str] = "https://placehold.co/600x400.png?text={text}"
DEFAULT_USER_NAME: Final[str] = "Fitness Enthusiast"

WORKOUT_CATEGORIES: Final[tuple[str, ...]] = (
    "Strength Training", "Cardiovascular", "Flexibility & Mobility", "HIIT",
)
WORKOUT_DIFFICULTIES: Final[tuple[str, ...]] = ("Beginner", "Intermediate", "Advanced")
DIET_CATEGORIES: Final[tuple[str, ...]] = (
    "Weight Loss", "Muscle Gain", "Balanced Diet", "Vegan", "Ketogenic",
)

WORKOUT_PROMPT_TEMPLATE: Final[str] = (
    """
    You are a world-class fitness expert. Analyze the user's request and generate a single,
    complete workout plan containing a list of exercises: a name, a short description, an
    appropriate category, difficulty, duration, and exercises with their details (sets, reps, time).
    If the request seems to be for a diet, still generate a workout named
    "Request appears to be for a diet" and explain in the description that only workout plans
    can be generated here.
    When earlier turns contain a plan, treat the new request as an edit of that plan.
    Answer with a JSON object only, in the following format:

    """
)
WORKOUT_JSON_FORMAT: Final[str] = (
    """
{
    "planName": str,
    "planDescription": str(one or two sentences),
    "category": "Strength Training" | "Cardiovascular" | "Flexibility & Mobility" | "HIIT",
    "difficulty": "Beginner" | "Intermediate" | "Advanced",
    "duration": str(e.g. "45 minutes"),
    "exercises": [
      {
        "name": str,
        "details": str(e.g. "3 sets of 10-12 reps")
      }
    ]
}
    """
)

DIET_PROMPT_TEMPLATE: Final[str] = (
    """
    You are a world-class nutrition expert. Analyze the user's request and generate a single,
    complete diet plan with a name, a short description, an appropriate category and a detailed
    meal plan where each meal or instruction is on a new line.
    When earlier turns contain a plan, treat the new request as an edit of that plan.
    Answer with a JSON object only, in the following format:

    """
)
DIET_JSON_FORMAT: Final[str] = (
    """
{
    "name": str,
    "description": str(one or two sentences),
    "category": "Weight Loss" | "Muscle Gain" | "Balanced Diet" | "Vegan" | "Ketogenic",
    "instructions": str(one meal or instruction per line),
    "caloriesPerDay": str(optional, e.g. "2200 kcal"),
    "protein": str(optional, e.g. "150g" or "30%"),
    "carbs": str(optional),
    "fat": str(optional)
}
    """
)

# Plan type detection and multi-plan suggestions
AUTO: Final[str] = "auto"
SUGGESTION_COUNT: Final[int] = 3

PLAN_TYPE_PROMPT_TEMPLATE: Final[str] = (
    """
    You are a world-class fitness and nutrition expert. First decide whether the user is asking
    for a "workout" plan or a "diet" plan and set "planType" accordingly. Then generate one
    complete plan of that type and put it under "workout" or "diet" (leave the other one out).
    Instructions hold one step, exercise or meal per line. The category must be one of the
    listed options. If the request is ambiguous or about neither, generate a workout plan.
    Answer with a JSON object only, in the following format:

    """
)
PLAN_TYPE_JSON_FORMAT: Final[str] = (
    """
{
    "planType": "workout" | "diet",
    "workout": {
        "name": str,
        "description": str(one or two sentences),
        "category": "Strength Training" | "Cardiovascular" | "Flexibility & Mobility" | "HIIT",
        "instructions": str(one exercise or step per line, e.g. "Squats: 3 sets of 10 reps"),
        "duration": str(optional, e.g. "45 minutes"),
        "difficulty": "Beginner" | "Intermediate" | "Advanced" (optional)
    },
    "diet": {
        "name": str,
        "description": str(one or two sentences),
        "category": "Weight Loss" | "Muscle Gain" | "Balanced Diet" | "Vegan" | "Ketogenic",
        "instructions": str(one meal or instruction per line),
        "caloriesPerDay": str(optional, e.g. "2200 kcal"),
        "protein": str(optional),
        "carbs": str(optional),
        "fat": str(optional)
    }
}
    """
)

SUGGESTIONS_PROMPT_TEMPLATE: Final[str] = (
    """
    You are a world-class fitness and nutrition expert. Decide whether the user wants workout
    plans or diet plans and set "planType" accordingly. Then suggest {count} distinct, complete
    plans of that type, listed under "workouts" or "diets" (leave the other list out). Each plan
    uses the same fields as below, with instructions holding one step or meal per line.
    If the request is ambiguous or about neither, suggest workout plans.
    Answer with a JSON object only, in the following format:

    """
)
SUGGESTIONS_JSON_FORMAT: Final[str] = (
    """
{
    "planType": "workout" | "diet",
    "workouts": [
      {
        "name": str,
        "description": str,
        "category": "Strength Training" | "Cardiovascular" | "Flexibility & Mobility" | "HIIT",
        "instructions": str,
        "duration": str(optional),
        "difficulty": "Beginner" | "Intermediate" | "Advanced" (optional)
      }
    ],
    "diets": [
      {
        "name": str,
        "description": str,
        "category": "Weight Loss" | "Muscle Gain" | "Balanced Diet" | "Vegan" | "Ketogenic",
        "instructions": str,
        "caloriesPerDay": str(optional),
        "protein": str(optional),
        "carbs": str(optional),
        "fat": str(optional)
      }
    ]
}
    """
)
