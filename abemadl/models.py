"""
models — Program and episode records.

`Episode` and `Recorded` are persisted in the download log; `VOD` and
`VODStatus` only live for the duration of a run. Field names on disk keep
the `videoURL` spelling so existing log files stay readable.
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Episode(_Frozen):
    video_url: str = Field(alias="videoURL")
    subtitle: str | None = None


class VOD(Episode):
    free: bool

    def as_episode(self) -> Episode:
        return Episode(video_url=self.video_url, subtitle=self.subtitle)


class ProgramId(_Frozen):
    url: str
    title: str


class VODStatus(ProgramId):
    episodes: tuple[VOD, ...] = ()


class Recorded(ProgramId):
    episodes: tuple[Episode, ...] = ()

    @model_validator(mode="after")
    def check_unique_video_urls(self):
        seen = set()
        for ep in self.episodes:
            if ep.video_url in seen:
                raise ValueError(f"duplicate videoURL in {self.url}: {ep.video_url}")
            seen.add(ep.video_url)
        return self

    def video_urls(self) -> set[str]:
        return {ep.video_url for ep in self.episodes}


# program URL -> Recorded; treated as an immutable value
Log = dict[str, Recorded]

LogAdapter = TypeAdapter(dict[str, Recorded])
UrlListAdapter = TypeAdapter(list[str])


def dump_log(log: Log) -> dict:
    return {url: rec.model_dump(mode="json", by_alias=True) for url, rec in log.items()}
