#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
crackjob.py: runs at most one crack job at a time on a background thread

A new submission supersedes whatever is running: the old job's cancel event
is set and the generation counter moves on, so anything the old thread
reports afterwards is dropped instead of reaching the listener.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from cipherengine import MAX_RESULTS, CandidateResult, CrackJob, JobSuperseded, crack

class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"

@dataclass
class JobMessage:
    kind: str  # "progress" | "complete" | "error"
    generation: int
    message: str = ""
    results: List[CandidateResult] = field(default_factory=list)

Listener = Callable[[JobMessage], None]

class CrackJobRunner:
    def __init__(self, crack_fn: Callable[..., List[CandidateResult]] = crack):
        self._crack = crack_fn
        self._lock = threading.RLock()
        self._generation = 0
        self._state = JobState.IDLE
        self._cancel_event: Optional[threading.Event] = None
        self._done = threading.Event()
        self._done.set()
        self._listener: Optional[Listener] = None
        self._outcome: Optional[JobMessage] = None

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def submit(self, job: CrackJob, listener: Optional[Listener] = None) -> int:
        """Start `job`, cancelling any running one. Returns the job's generation."""
        with self._lock:
            self._drop_current()
            self._generation += 1
            generation = self._generation
            cancel_event = threading.Event()
            done = threading.Event()
            self._cancel_event = cancel_event
            self._done = done
            self._listener = listener
            self._outcome = None
            self._state = JobState.RUNNING
            t = threading.Thread(target=self._run, args=(job, generation, cancel_event, done),
                                 name=f"crack-job-{generation}", daemon=True)
        t.start()
        return generation

    def cancel(self):
        """Abandon the running job (if any) and go back to idle."""
        with self._lock:
            if self._state is JobState.RUNNING:
                self._drop_current()
                self._generation += 1
                self._state = JobState.IDLE
                self._done = threading.Event()
                self._done.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[JobMessage]:
        """Block until the latest job finishes; returns its outcome or None.

        A job submitted while waiting replaces the one being waited on.
        `timeout` bounds the whole wait, not each job.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                done = self._done
                generation = self._generation
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            finished = done.wait(remaining)
            with self._lock:
                if not finished or generation == self._generation:
                    return self._outcome

    def consume(self) -> Optional[JobMessage]:
        """Hand over a finished job's outcome and return to idle."""
        with self._lock:
            outcome = self._outcome
            if self._state in (JobState.COMPLETE, JobState.ERROR):
                self._state = JobState.IDLE
                self._outcome = None
            return outcome

    def _drop_current(self):
        if self._cancel_event is not None:
            self._cancel_event.set()
        self._cancel_event = None
        self._listener = None

    def _run(self, job: CrackJob, generation: int, cancel_event: threading.Event, done: threading.Event):
        try:
            results = self._crack(job, progress=lambda msg: self._progress(generation, msg),
                                  cancel_event=cancel_event)
        except JobSuperseded:
            pass
        except Exception as e:
            self._finish(generation, JobMessage("error", generation, str(e) or type(e).__name__))
        else:
            self._finish(generation, JobMessage("complete", generation, "Done",
                                                list(results[:MAX_RESULTS])))
        finally:
            done.set()

    def _progress(self, generation: int, msg: str):
        with self._lock:
            if generation != self._generation:
                return
            if self._listener is not None:
                self._listener(JobMessage("progress", generation, msg))

    def _finish(self, generation: int, outcome: JobMessage):
        with self._lock:
            if generation != self._generation:
                return
            self._outcome = outcome
            self._state = JobState.COMPLETE if outcome.kind == "complete" else JobState.ERROR
            self._cancel_event = None
            if self._listener is not None:
                self._listener(outcome)
