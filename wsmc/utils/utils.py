import time

import numpy as np

MAX_SEED = np.iinfo(np.int64).max


class Timer:
    """Accumulating wall-clock timer usable as a context manager.

    ``elapsed`` may be seeded so that a resumed run keeps counting from where the checkpoint stopped.
    """

    def __init__(self, elapsed=0.0, func=time.perf_counter):
        self.elapsed = float(elapsed)

        self._func = func

        self._start = None

    @property
    def running(self):
        return self._start is not None

    @property
    def current(self):
        """Elapsed time including the interval currently being timed."""
        if self._start is None:
            return self.elapsed
        return self.elapsed + (self._func() - self._start)

    def start(self):
        if self._start is not None:
            raise RuntimeError("Already started")

        self._start = self._func()

    def stop(self):
        if self._start is None:
            raise RuntimeError("Not started")

        self.elapsed += self._func() - self._start

        self._start = None

    def __enter__(self):
        self.start()

        return self

    def __exit__(self, *args):
        self.stop()


def draw_seeds(rng, size):
    """Draw independent integer seeds, one per task handed to a worker."""
    return rng.integers(0, MAX_SEED, size=size)


def map_tasks(executor, func, *iterables):
    """Run ``func`` over the zipped iterables, inline when no executor is given.

    Results come back in submission order. The first exception raised by a task is re-raised together with the index
    of the offending task.
    """
    if executor is None:
        results = []
        for idx, args in enumerate(zip(*iterables)):
            try:
                results.append(func(*args))
            except Exception as err:
                raise TaskError(idx, err) from err
        return results

    futures = [executor.submit(func, *args) for args in zip(*iterables)]

    results = []
    for idx, future in enumerate(futures):
        exception = future.exception()
        if exception is not None:
            for pending in futures[idx + 1 :]:
                pending.cancel()
            raise TaskError(idx, exception) from exception
        results.append(future.result())
    return results


class TaskError(Exception):
    def __init__(self, task_idx, error):
        super().__init__("Task {} failed: {!r}".format(task_idx, error))
        self.task_idx = task_idx
        self.error = error
