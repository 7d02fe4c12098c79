"""Core pipeline functionality (bamtofastq)."""

from bamtofastq.core.pipeline import Pipeline, RunOutcome, SampleRunner, Toolbox
from bamtofastq.core.pipeline_types import PipelineStep, SampleResult, StageContext

__all__ = [
    "Pipeline",
    "PipelineStep",
    "RunOutcome",
    "SampleResult",
    "SampleRunner",
    "StageContext",
    "Toolbox",
]
