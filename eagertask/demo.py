"""Sample workloads: staggered waits joined in a different order than started."""

from __future__ import annotations

from eagertask.effects import Delay
from eagertask.scheduler import task
from eagertask.runtime import TaskBody


@task
def wait_n(n: int) -> TaskBody[int]:
    print(f"before wait {n}")
    yield Delay(n)
    print(f"after wait {n}")
    return n


@task
def greeting(text: str, interval: float = 1.0) -> TaskBody[int]:
    for char in text:
        print(char, end="", flush=True)
        yield Delay(interval)
    print()
    return len(text)


@task
def main_workload(text: str = "hello world") -> TaskBody[int]:
    yield greeting(text)

    print("test step 1")
    w3 = wait_n(3)
    print("test step 2")
    w2 = wait_n(2)
    print("test step 3")
    w1 = wait_n(1)
    print("test step 4")
    r = (yield w2) + (yield w3)
    # w1 finished while w2 was pending, so this takes the non-suspending path
    print("awaiting already computed task")
    return (yield w1) + r


__all__ = ["greeting", "main_workload", "wait_n"]
