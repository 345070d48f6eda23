"""
dedupe — Pick download targets against the download log and fold results back in.

Identity is the video URL only: subtitle and free flag never take part in
the comparison. Both functions are pure; neither touches the inputs.
"""
from __future__ import annotations
from typing import Iterable

import structlog

from .models import Log, Recorded, VOD, VODStatus

log = structlog.get_logger()


def select_targets(status: VODStatus, recorded: Recorded | None) -> list[VOD]:
    """Free episodes of `status` not yet in `recorded`, in listing order."""
    known = recorded.video_urls() if recorded is not None else set()
    return [ep for ep in status.episodes if ep.free and ep.video_url not in known]


def plan_targets(programs: Iterable[VODStatus], history: Log) -> list[VODStatus]:
    """Apply select_targets to every scraped program."""
    planned = []
    for program in programs:
        targets = select_targets(program, history.get(program.url))
        planned.append(program.model_copy(update={"episodes": tuple(targets)}))
        if targets:
            log.info("targets_selected", url=program.url, count=len(targets))
    return planned


def merge_log(history: Log, downloaded: Iterable[Recorded]) -> Log:
    """
    Return a new log with newly downloaded episodes appended after the
    already recorded ones of the same program.

    Programs with nothing new keep their entry untouched; existing episodes
    are never dropped or reordered.
    """
    merged = dict(history)
    for program in downloaded:
        prior = merged.get(program.url)
        prior_eps = prior.episodes if prior is not None else ()
        known = {ep.video_url for ep in prior_eps}

        fresh = []
        for ep in program.episodes:
            if ep.video_url not in known:
                known.add(ep.video_url)
                fresh.append(ep)
        if not fresh:
            continue

        merged[program.url] = Recorded(
            url=program.url,
            title=program.title,
            episodes=(*prior_eps, *fresh),
        )
    return merged
