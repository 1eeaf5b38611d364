"""Extensions shipped with habitext."""

from habitext.extensions.builtins.mood_tracker import MoodTrackerPlugin
from habitext.extensions.builtins.streak_tracker import StreakTrackerPlugin

BUILTIN_PLUGINS = (StreakTrackerPlugin, MoodTrackerPlugin)

__all__ = ["BUILTIN_PLUGINS", "MoodTrackerPlugin", "StreakTrackerPlugin"]
