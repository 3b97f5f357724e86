from enum import Enum

class TaskStatus(str, Enum):
    Pending = "pending"
    InProgress = "in_progress"
    Completed = "completed"
