from .process_manager import ProcessManager as ProcessManager
from .readiness_barrier import ReadinessBarrier as ReadinessBarrier
