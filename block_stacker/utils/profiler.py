# block_stacker/utils/profiler.py

import time
from collections import deque
from typing import Deque, Dict, Optional


class CycleProfiler:
    """Rolling wall-clock timings per named section of a replanning iteration."""

    def __init__(self, max_samples: int = 100):
        self.profile_data: Dict[str, Deque[float]] = {}
        self.current_section: Optional[str] = None
        self.section_start: Optional[float] = None
        self.max_samples: int = max_samples if max_samples > 0 else 100

    def set_max_samples(self, max_samples: int):
        if max_samples > 0: self.max_samples = max_samples
        for section in self.profile_data:
            self.profile_data[section] = deque(self.profile_data[section], maxlen=self.max_samples)

    def start_section(self, section_name: str):
        if self.current_section: self.end_section()
        self.current_section = section_name
        self.section_start = time.monotonic()

    def end_section(self):
        if self.current_section and self.section_start is not None:
            duration = time.monotonic() - self.section_start
            self.profile_data.setdefault(self.current_section, deque(maxlen=self.max_samples)).append(duration)
        self.current_section = None
        self.section_start = None

    def get_cycle_profile(self) -> Dict[str, float]:
        return {k: v[-1] for k, v in self.profile_data.items() if v}

    def get_average_profile(self) -> Dict[str, float]:
        return {k: sum(v) / len(v) for k, v in self.profile_data.items() if v}

    def reset(self):
        self.profile_data.clear()
        self.current_section = None
        self.section_start = None
