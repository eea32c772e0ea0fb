from src.models.task_template import TaskTemplate
from src.models.daily_task import DailyTask, PresetRun
from src.models.task_record import TaskRecord
from src.models.challenge import DailyChallenge, WeeklyChallenge, WeeklySubmission
from src.models.ai import AiConfig
from src.models.reward import WriterProfile, XpTransaction, UnlockedAchievement
