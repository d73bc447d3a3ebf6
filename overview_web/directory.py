"""
Schedule document -> directory (service type -> services -> departments -> positions -> volunteers).

Two stages:
  decode_services: structural. Walks the services/getAll.json shape into flat ServiceRecord/Assignment values.
  build_directory: business rules. Drops unfilled positions, groups, sorts.

The API is loose about empty values: a list or object that has no items may come back as "", null, [] or
missing, and a one-item list may be a bare object. Decoding treats all of those uniformly.
"""
import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from overview_web.errors import InvalidDocument, UnexpectedShape

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    department: str
    position: str
    volunteers: tuple[str, ...]


@dataclass(frozen=True)
class ServiceRecord:
    id: str
    name: str
    type_name: str
    location: str
    date: str
    assignments: tuple[Assignment, ...]


@dataclass(frozen=True)
class Position:
    name: str
    volunteers: tuple[str, ...]


@dataclass(frozen=True)
class Department:
    name: str
    positions: tuple[Position, ...]


@dataclass(frozen=True)
class Service:
    name: str
    id: str
    location: str
    date: str
    departments: tuple[Department, ...]


@dataclass(frozen=True)
class ServiceType:
    type: str
    services: tuple[Service, ...]


# --- decoding ---


def _items(container: dict, key: str, where: str) -> list:
    value = container.get(key)
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    raise UnexpectedShape(f"{where}.{key} should be an array, got {type(value).__name__}")


def _obj(value: Any, where: str) -> dict:
    if value is None or value == "" or value == []:
        return {}
    if not isinstance(value, dict):
        raise UnexpectedShape(f"{where} should be an object, got {type(value).__name__}")
    return value


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _name_of(value: Any, where: str) -> str:
    """Nested {"name": ...} objects (location, service_type); "" when absent."""
    return _text(_obj(value, where).get("name"))


def _calendar_date(raw: Any) -> str:
    # "2021-03-14 09:30:00" -> "2021-03-14"
    return _text(raw).split(" ", 1)[0]


def _person_name(volunteer: dict, where: str) -> str:
    person = _obj(volunteer.get("person"), f"{where}.person")
    return " ".join(p for p in (_text(person.get("firstname")), _text(person.get("lastname"))) if p)


def _decode_volunteers(position: dict, where: str) -> tuple[str, ...]:
    # "" is how the API spells "nobody assigned"
    holder = _obj(position.get("volunteers"), f"{where}.volunteers")
    names = []
    for i, vol in enumerate(_items(holder, "volunteer", f"{where}.volunteers")):
        name = _person_name(_obj(vol, f"{where}.volunteers.volunteer[{i}]"), f"{where}.volunteers.volunteer[{i}]")
        if name:
            names.append(name)
        else:
            logger.warning("Skipping volunteer without a name at %s.volunteers.volunteer[%d]", where, i)
    return tuple(names)


def _decode_assignments(service: dict, where: str) -> tuple[Assignment, ...]:
    volunteers = _obj(service.get("volunteers"), f"{where}.volunteers")
    out = []
    for p, plan in enumerate(_items(volunteers, "plan", f"{where}.volunteers")):
        plan_where = f"{where}.volunteers.plan[{p}]"
        positions = _obj(_obj(plan, plan_where).get("positions"), f"{plan_where}.positions")
        for q, pos in enumerate(_items(positions, "position", f"{plan_where}.positions")):
            pos_where = f"{plan_where}.positions.position[{q}]"
            pos = _obj(pos, pos_where)
            out.append(
                Assignment(
                    department=_text(pos.get("department_name")),
                    position=_text(pos.get("position_name")),
                    volunteers=_decode_volunteers(pos, pos_where),
                )
            )
    return tuple(out)


def _decode_service(record: Any, index: int) -> ServiceRecord:
    where = f"services.service[{index}]"
    if not isinstance(record, dict):
        raise UnexpectedShape(f"{where} should be an object, got {type(record).__name__}")
    return ServiceRecord(
        id=_text(record.get("id")),
        name=_text(record.get("name")),
        type_name=_name_of(record.get("service_type"), f"{where}.service_type"),
        location=_name_of(record.get("location"), f"{where}.location"),
        date=_calendar_date(record.get("date")),
        assignments=_decode_assignments(record, where),
    )


def decode_services(raw: bytes | str) -> list[ServiceRecord]:
    """Structural decode of a services/getAll.json document. No filtering or grouping."""
    try:
        doc = json.loads(raw)
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueError
        raise InvalidDocument(f"schedule document is not valid JSON: {e}") from e
    services = doc.get("services") if isinstance(doc, dict) else None
    records = services.get("service") if isinstance(services, dict) else None
    if not isinstance(records, list):
        raise UnexpectedShape("services.service is missing or not an array")
    return [_decode_service(rec, i) for i, rec in enumerate(records)]


# --- normalization ---


def _build_service(record: ServiceRecord) -> Service:
    departments: dict[str, dict[str, list[str]]] = {}
    for a in record.assignments:
        if not a.volunteers:
            continue
        # Every assignment is kept; two people can share a display name
        departments.setdefault(a.department, {}).setdefault(a.position, []).extend(a.volunteers)
    return Service(
        name=record.name,
        id=record.id,
        location=record.location,
        date=record.date,
        departments=tuple(
            Department(
                name=dept,
                positions=tuple(Position(name=pos, volunteers=tuple(names)) for pos, names in sorted(positions.items())),
            )
            for dept, positions in sorted(departments.items())
        ),
    )


def build_directory(records: Iterable[ServiceRecord]) -> list[ServiceType]:
    """Group services by type (sorted by type name); services sorted by date, name, id."""
    by_type: dict[str, list[Service]] = {}
    for record in records:
        by_type.setdefault(record.type_name, []).append(_build_service(record))
    return [
        ServiceType(type=type_name, services=tuple(sorted(services, key=lambda s: (s.date, s.name, s.id))))
        for type_name, services in sorted(by_type.items())
    ]


def normalize(raw: bytes | str) -> list[ServiceType]:
    """Raw schedule document -> directory. Raises InvalidDocument or UnexpectedShape."""
    return build_directory(decode_services(raw))


def directory_as_dicts(directory: list[ServiceType]) -> list[dict]:
    return [asdict(service_type) for service_type in directory]
