import json
from dataclasses import dataclass, field
from typing import List

from flask import current_app
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    field_validator,
)

from ballotbox.errors import SchemaError


class Race(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, validation_alias=AliasChoices("title", "label"))
    max_choices: StrictInt = Field(1, ge=1, validation_alias=AliasChoices("maxChoices", "max_choices"))
    open: StrictBool = True


class CandidateEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    bio: str = ""

    @field_validator("bio", mode="before")
    @classmethod
    def blank_bio(cls, value):
        return "" if value is None else value


class Candidate(CandidateEntry):
    race_id: str = Field(min_length=1, validation_alias=AliasChoices("raceId", "positionId"))


class RaceEntry(Race):
    candidates: List[CandidateEntry] = Field(default_factory=list)


class FlatDocument(BaseModel):
    positions: List[Race]
    candidates: List[Candidate]


class NestedDocument(BaseModel):
    races: List[RaceEntry]


@dataclass(frozen=True)
class ElectionSchema:
    races: tuple
    candidates: tuple
    _races_by_id: dict = field(init=False, repr=False, compare=False)
    _candidates_by_race: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        races_by_id = {race.id: race for race in self.races}
        by_race = {race.id: {} for race in self.races}
        for candidate in self.candidates:
            by_race[candidate.race_id][candidate.id] = candidate
        object.__setattr__(self, "_races_by_id", races_by_id)
        object.__setattr__(self, "_candidates_by_race", by_race)

    def race(self, race_id):
        return self._races_by_id.get(race_id)

    def candidate(self, race_id, candidate_id):
        return self._candidates_by_race.get(race_id, {}).get(candidate_id)

    def candidates_for(self, race_id):
        return list(self._candidates_by_race.get(race_id, {}).values())

    def open_races(self):
        return [race for race in self.races if race.open]

    def to_public_dict(self):
        return {
            "positions": [
                {
                    "id": race.id,
                    "title": race.title,
                    "label": race.title,
                    "maxChoices": race.max_choices,
                    "open": race.open,
                }
                for race in self.races
            ],
            "candidates": [
                {
                    "id": candidate.id,
                    "name": candidate.name,
                    "bio": candidate.bio,
                    "raceId": candidate.race_id,
                    "positionId": candidate.race_id,
                }
                for candidate in self.candidates
            ],
        }


def _read_document(document):
    if isinstance(document, dict) and "races" in document:
        nested = NestedDocument.model_validate(document)
        races = [Race(**entry.model_dump(exclude={"candidates"})) for entry in nested.races]
        candidates = [
            Candidate(race_id=entry.id, **item.model_dump())
            for entry in nested.races
            for item in entry.candidates
        ]
        return races, candidates

    flat = FlatDocument.model_validate(document)
    return flat.positions, flat.candidates


def parse_schema(document):
    """Validate a decoded candidates document and build an ElectionSchema.

    Either ``{"positions": [...], "candidates": [...]}`` or
    ``{"races": [{..., "candidates": [...]}]}``.
    """
    try:
        races, candidates = _read_document(document)
    except ValidationError as exc:
        raise SchemaError(f"invalid candidates document: {exc}") from exc

    if not races:
        raise SchemaError("no races declared")

    race_ids = set()
    for race in races:
        if race.id in race_ids:
            raise SchemaError(f"duplicate race id '{race.id}'")
        race_ids.add(race.id)

    seen = set()
    for candidate in candidates:
        if candidate.race_id not in race_ids:
            raise SchemaError(
                f"candidate '{candidate.id}' references unknown race '{candidate.race_id}'"
            )
        key = (candidate.race_id, candidate.id)
        if key in seen:
            raise SchemaError(
                f"duplicate candidate id '{candidate.id}' in race '{candidate.race_id}'"
            )
        seen.add(key)

    for race in races:
        if not any(candidate.race_id == race.id for candidate in candidates):
            raise SchemaError(f"race '{race.id}' has no candidates")

    return ElectionSchema(races=tuple(races), candidates=tuple(candidates))


def load_schema(path):
    try:
        with open(path, "r", encoding="utf-8") as handle:
            document = json.load(handle)
    except FileNotFoundError as exc:
        raise SchemaError(f"candidates file not found: {path}") from exc
    except (OSError, ValueError) as exc:
        raise SchemaError(f"cannot read candidates file {path}: {exc}") from exc

    return parse_schema(document)


def init_schema(app):
    schema = load_schema(app.config["SCHEMA_FILE"])
    app.extensions["schema"] = schema
    app.logger.info(
        "Loaded %d races and %d candidates from %s",
        len(schema.races),
        len(schema.candidates),
        app.config["SCHEMA_FILE"],
    )
    return schema


def get_schema():
    return current_app.extensions["schema"]
