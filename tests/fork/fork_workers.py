# tests/fork/fork_workers.py
"""Batch functions run inside forked children by the orchestrator tests.

Kept at module level so they resolve under any start method, either as
callables or as ``"fork_workers:<name>"`` entry points.
"""
from __future__ import annotations

import os
import sys
import threading

from forkjob import current_stats, send_custom


def echo_batch(init_data, batch):
    stats = current_stats()
    stats.add_result("count", len(batch))
    stats.add_result("seen", list(batch))
    return list(batch)


def count_one(init_data, batch):
    current_stats().add_result("count", 1)
    return list(batch)


def fail_on_marker(init_data, batch):
    if init_data.get("fail_on") in batch:
        raise ValueError(f"bad item {init_data['fail_on']}")
    current_stats().add_result("processed", list(batch))
    return list(batch)


def return_init(init_data, batch):
    return init_data


def return_argv(init_data, batch):
    return sys.argv[1:]


def log_items(init_data, batch):
    for item in batch:
        current_stats().add_log(f"item {item}")
    return None


def relay_custom(init_data, batch):
    send_custom(kind="progress", items=list(batch))
    return None


def crash(init_data, batch):
    os._exit(3)


def exit_quietly(init_data, batch):
    os._exit(0)


def hang(init_data, batch):
    threading.Event().wait()


def return_lock(init_data, batch):
    if 2 in batch:
        return threading.Lock()
    current_stats().add_result("sent", list(batch))
    return list(batch)
