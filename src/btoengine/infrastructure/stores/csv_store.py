"""
CSV snapshot store.

One comma-separated file per entity, header row first, no quoting. Manager
and officer columns of the project file hold person names (an NRIC is also
accepted on read). Project visibility lives in a sidecar file because the
project layout ends in a variable-length officer list.

Available units are not stored: they are derived on load as total minus the
number of BOOKED applications of that flat type.
"""

from __future__ import annotations

import csv
import logging
import os
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from btoengine.application.ports.persistence_port import Snapshot
from btoengine.config.settings import StorageFiles
from btoengine.core.errors import PersistenceError, ValidationError
from btoengine.domain.application import Application, WithdrawalRequest
from btoengine.domain.enquiry import Enquiry
from btoengine.domain.enums import ApplicationStatus, FlatType, Role
from btoengine.domain.person import Person
from btoengine.domain.project import FlatOffer, Project
from btoengine.domain.registration import Registration

logger = logging.getLogger(__name__)

PERSON_HEADER = ("Name", "NRIC", "Age", "MaritalStatus", "Password")
PROJECT_HEADER = (
    "ProjectName", "Neighborhood",
    "Type1", "NumberOfUnitsType1", "SellingPriceType1",
    "Type2", "NumberOfUnitsType2", "SellingPriceType2",
    "ApplicationOpeningDate", "ApplicationClosingDate",
    "Manager", "OfficerSlot", "Officers",
)
VISIBILITY_HEADER = ("ProjectName", "Visible")
APPLICATION_HEADER = ("ApplicationId", "ApplicantNRIC", "ProjectName", "FlatType", "Status")
REGISTRATION_HEADER = ("RegistrationID", "OfficerNRIC", "ProjectName", "RegistrationDate", "Status")
ENQUIRY_HEADER = ("EnquiryID", "ApplicantNRIC", "ProjectName", "Message", "Reply", "CreatedAt", "RepliedAt", "RepliedBy")
WITHDRAWAL_HEADER = ("RequestId", "ApplicationId", "RequestedAt", "IsApproved", "ProcessedAt", "ProcessedBy")

# Columns before the trailing officer list.
PROJECT_FIXED_COLUMNS = 12
FLAT_TYPE_COLUMNS = 2
NULL = "null"

_DIALECT = dict(delimiter=",", quoting=csv.QUOTE_NONE, quotechar=None, lineterminator="\n")
# Present while files are being swapped in; a leftover marker means the swap was cut short.
SWAP_MARKER = ".swap-in-progress"


@dataclass
class _Row:
    file: str
    line: int
    cells: List[str]

    def fail(self, message: str, field: str) -> ValidationError:
        return ValidationError(
            message=f"{self.file}:{self.line}: {message}",
            context={"file": self.file, "line": self.line, "field": field},
        )


def _located(error: ValidationError, row: _Row) -> ValidationError:
    if error.context and "line" in error.context:
        return error
    error.context = {**(error.context or {}), "file": row.file, "line": row.line}
    error.message = f"{row.file}:{row.line}: {error.message}"
    return error


def _int(row: _Row, raw: str, field: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise row.fail(f"{field} is not an integer: {raw!r}", field) from None


def _float(row: _Row, raw: str, field: str) -> float:
    try:
        return float(raw.strip())
    except ValueError:
        raise row.fail(f"{field} is not a number: {raw!r}", field) from None


def _bool(row: _Row, raw: str, field: str) -> Optional[bool]:
    text = raw.strip().lower()
    if text == "":
        return None
    if text in ("true", "false"):
        return text == "true"
    raise row.fail(f"{field} must be true, false or empty: {raw!r}", field)


def _opt(raw: str) -> Optional[str]:
    text = raw.strip()
    return text or None


def _fmt_price(price: float) -> str:
    return str(int(price)) if float(price).is_integer() else repr(float(price))


def _fmt_time(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def _fmt_bool(value: Optional[bool]) -> str:
    return "" if value is None else ("true" if value else "false")


class CsvPersistenceGateway:
    def __init__(self, data_dir: str | Path, *, files: Optional[StorageFiles] = None):
        self.data_dir = Path(data_dir).expanduser()
        self.files = files or StorageFiles()

    # ---- reading ----

    def _rows(self, name: str, header: Sequence[str], *, optional_tail: int = 0) -> Iterator[_Row]:
        """Yield data rows of ``name``; a missing file has no rows."""
        path = self.data_dir / name
        if not path.exists():
            return
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                lines = list(csv.reader(f, **_DIALECT))
        except OSError as e:
            logger.error("Cannot read %s: %s", path, e)
            raise PersistenceError(message=f"Cannot read {path}: {e}", context={"file": name}) from e
        except csv.Error as e:
            raise ValidationError(message=f"{name}: malformed CSV: {e}", context={"file": name, "line": 0}) from e

        if not lines:
            return
        found = [c.strip().casefold() for c in lines[0]]
        required = [h.casefold() for h in header[: len(header) - optional_tail]]
        if found[: len(required)] != required or len(found) > len(header):
            raise ValidationError(
                message=f"{name}: unexpected header {','.join(lines[0])}",
                context={"file": name, "line": 1, "field": "header"},
            )
        for number, cells in enumerate(lines[1:], start=2):
            if not any(c.strip() for c in cells):
                continue
            yield _Row(file=name, line=number, cells=cells)

    def _expect(self, row: _Row, minimum: int, maximum: Optional[int] = None) -> None:
        count = len(row.cells)
        maximum = minimum if maximum is None else maximum
        if count < minimum or count > maximum:
            expected = str(minimum) if minimum == maximum else f"{minimum}-{maximum}"
            raise row.fail(f"expected {expected} columns, found {count}", "columns")

    def _load_persons(self) -> Dict[str, Person]:
        persons: Dict[str, Person] = {}
        for file_name, role in (
            (self.files.applicants, Role.APPLICANT),
            (self.files.officers, Role.OFFICER),
            (self.files.managers, Role.MANAGER),
        ):
            for row in self._rows(file_name, PERSON_HEADER):
                self._expect(row, len(PERSON_HEADER))
                name, nric, age, marital, password = (c.strip() for c in row.cells)
                try:
                    person = Person(
                        nric=nric, name=name, age=_int(row, age, "Age"),
                        marital_status=marital, roles={role}, password=password,
                    )
                except ValidationError as e:
                    raise _located(e, row)
                known = persons.get(person.nric)
                if known is None:
                    persons[person.nric] = person
                    continue
                if (known.name, known.age, known.marital_status, known.password) != (
                    person.name, person.age, person.marital_status, person.password
                ):
                    raise row.fail(f"{person.nric} differs from an earlier record", "NRIC")
                known.roles.add(role)
        return persons

    def _resolve(self, row: _Row, ref: str, persons: Dict[str, Person], role: Role, field: str) -> str:
        ref = ref.strip().strip('"')
        if ref in persons and persons[ref].has_role(role):
            return ref
        matches = [p.nric for p in persons.values() if p.has_role(role) and p.name == ref]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise row.fail(f"no {role.value.lower()} named {ref!r}", field)
        raise row.fail(f"{role.value.lower()} name {ref!r} is ambiguous", field)

    def _load_projects(self, persons: Dict[str, Person]) -> Dict[str, Project]:
        visibility: Dict[str, bool] = {}
        for row in self._rows(self.files.visibility, VISIBILITY_HEADER):
            self._expect(row, len(VISIBILITY_HEADER))
            flag = _bool(row, row.cells[1], "Visible")
            if flag is None:
                raise row.fail("Visible must be true or false", "Visible")
            visibility[row.cells[0].strip()] = flag

        projects: Dict[str, Project] = {}
        folded = set()
        for row in self._rows(self.files.projects, PROJECT_HEADER, optional_tail=1):
            if len(row.cells) < PROJECT_FIXED_COLUMNS:
                raise row.fail(f"expected at least {PROJECT_FIXED_COLUMNS} columns, found {len(row.cells)}", "columns")
            cells = row.cells
            flats: Dict[FlatType, FlatOffer] = {}
            for i in range(FLAT_TYPE_COLUMNS):
                raw_type, raw_units, raw_price = (c.strip() for c in cells[2 + 3 * i: 5 + 3 * i])
                if raw_type in ("", NULL) and not raw_units:
                    continue
                field = f"Type{i + 1}"
                try:
                    flat_type = FlatType.parse(raw_type, field=field)
                except ValidationError as e:
                    raise _located(e, row)
                if flat_type in flats:
                    raise row.fail(f"{flat_type.value} listed twice", field)
                units = _int(row, raw_units, f"NumberOfUnits{field}")
                price = _float(row, raw_price, f"SellingPrice{field}")
                try:
                    flats[flat_type] = FlatOffer(total_units=units, available_units=units, price=price)
                except ValidationError as e:
                    raise _located(e, row)
            name = cells[0].strip()
            officers = [
                self._resolve(row, ref, persons, Role.OFFICER, "Officers")
                for ref in cells[PROJECT_FIXED_COLUMNS:] if ref.strip().strip('"')
            ]
            try:
                project = Project(
                    name=name,
                    neighborhood=cells[1].strip(),
                    opening_date=cells[8].strip(),
                    closing_date=cells[9].strip(),
                    flats=flats,
                    manager_nric=self._resolve(row, cells[10], persons, Role.MANAGER, "Manager"),
                    officer_slots=_int(row, cells[11], "OfficerSlot"),
                    officers=officers,
                    visible=visibility.get(name, True),
                )
            except ValidationError as e:
                raise _located(e, row)
            if project.name.casefold() in folded:
                raise row.fail(f"duplicate project {project.name}", "ProjectName")
            folded.add(project.name.casefold())
            projects[project.name] = project
        return projects

    def _load_applications(self) -> Dict[str, Application]:
        applications: Dict[str, Application] = {}
        for row in self._rows(self.files.applications, APPLICATION_HEADER):
            self._expect(row, len(APPLICATION_HEADER))
            app_id, nric, project, flat_type, status = (c.strip() for c in row.cells)
            try:
                application = Application(
                    application_id=app_id,
                    applicant_nric=nric,
                    project_name=project,
                    flat_type=None if flat_type in ("", NULL) else flat_type,
                    status=status,
                )
            except ValidationError as e:
                raise _located(e, row)
            if application.application_id in applications:
                raise row.fail(f"duplicate application {app_id}", "ApplicationId")
            applications[application.application_id] = application
        return applications

    def _load_registrations(self) -> Dict[str, Registration]:
        registrations: Dict[str, Registration] = {}
        for row in self._rows(self.files.registrations, REGISTRATION_HEADER):
            self._expect(row, len(REGISTRATION_HEADER))
            reg_id, nric, project, reg_date, status = (c.strip() for c in row.cells)
            try:
                registration = Registration(
                    registration_id=reg_id, officer_nric=nric, project_name=project,
                    registration_date=reg_date, status=status,
                )
            except ValidationError as e:
                raise _located(e, row)
            if registration.registration_id in registrations:
                raise row.fail(f"duplicate registration {reg_id}", "RegistrationID")
            registrations[registration.registration_id] = registration
        return registrations

    def _load_enquiries(self) -> Dict[str, Enquiry]:
        enquiries: Dict[str, Enquiry] = {}
        for row in self._rows(self.files.enquiries, ENQUIRY_HEADER, optional_tail=1):
            self._expect(row, len(ENQUIRY_HEADER) - 1, len(ENQUIRY_HEADER))
            cells = [c.strip() for c in row.cells] + [""] * (len(ENQUIRY_HEADER) - len(row.cells))
            enq_id, nric, project, message, reply, created_at, replied_at, replied_by = cells
            try:
                enquiry = Enquiry(
                    enquiry_id=enq_id, creator_nric=nric, project_name=project, message=message,
                    created_at=created_at, reply=_opt(reply), replier_nric=_opt(replied_by),
                    replied_at=_opt(replied_at),
                )
            except ValidationError as e:
                raise _located(e, row)
            if enquiry.enquiry_id in enquiries:
                raise row.fail(f"duplicate enquiry {enq_id}", "EnquiryID")
            enquiries[enquiry.enquiry_id] = enquiry
        return enquiries

    def _load_withdrawals(self) -> Dict[str, WithdrawalRequest]:
        withdrawals: Dict[str, WithdrawalRequest] = {}
        for row in self._rows(self.files.withdrawals, WITHDRAWAL_HEADER):
            self._expect(row, len(WITHDRAWAL_HEADER))
            req_id, app_id, requested_at, approved, processed_at, processed_by = (c.strip() for c in row.cells)
            try:
                request = WithdrawalRequest(
                    request_id=req_id, application_id=app_id, requested_at=requested_at,
                    is_approved=_bool(row, approved, "IsApproved"),
                    processed_at=_opt(processed_at), processed_by=_opt(processed_by),
                )
            except ValidationError as e:
                raise _located(e, row)
            if request.request_id in withdrawals:
                raise row.fail(f"duplicate withdrawal request {req_id}", "RequestId")
            withdrawals[request.request_id] = request
        return withdrawals

    def load(self) -> Snapshot:
        marker = self.data_dir / SWAP_MARKER
        if marker.exists():
            logger.error("Interrupted snapshot save detected in %s", self.data_dir)
            raise PersistenceError(
                message=f"An earlier save to {self.data_dir} was interrupted; the files may mix two snapshots",
                context={"data_dir": str(self.data_dir), "file": SWAP_MARKER},
            )
        persons = self._load_persons()
        projects = self._load_projects(persons)
        applications = self._load_applications()
        self._derive_available(projects, applications.values())
        snapshot = Snapshot(
            persons=persons,
            projects=projects,
            applications=applications,
            registrations=self._load_registrations(),
            enquiries=self._load_enquiries(),
            withdrawals=self._load_withdrawals(),
        )
        logger.info("Loaded CSV snapshot from %s: %s", self.data_dir, snapshot.counts())
        return snapshot

    def _derive_available(self, projects: Dict[str, Project], applications: Iterable[Application]) -> None:
        booked: Counter = Counter(
            (a.project_name, a.flat_type) for a in applications if a.status == ApplicationStatus.BOOKED
        )
        for (project_name, flat_type), count in booked.items():
            offer = projects[project_name].offer(flat_type) if project_name in projects else None
            if offer is None:
                # Unknown project or flat type; reported when bindings are rebuilt or the ledger verified.
                continue
            if count > offer.total_units:
                raise ValidationError(
                    message=f"{self.files.projects}: {project_name} has {count} {flat_type.value} bookings "
                            f"but only {offer.total_units} units",
                    context={"file": self.files.projects, "id": project_name, "field": "NumberOfUnits"},
                )
            offer.available_units = offer.total_units - count

    # ---- writing ----

    @staticmethod
    def _cell(file_name: str, field: str, value: object) -> str:
        text = "" if value is None else str(value)
        if any(ch in text for ch in ",\r\n"):
            raise ValidationError(
                message=f"{file_name}: {field} contains a comma or line break",
                context={"file": file_name, "field": field},
            )
        return text

    def _table(self, file_name: str, header: Sequence[str], rows: Iterable[Tuple[Sequence[str], Sequence[object]]]):
        """``rows`` yields (field names, values) pairs; every value is checked."""
        out = [list(header)]
        for fields, values in rows:
            out.append([self._cell(file_name, f, v) for f, v in zip(fields, values)])
        return file_name, out

    @staticmethod
    def _ref(nric: str, persons: Dict[str, Person], role: Role) -> str:
        person = persons.get(nric)
        if person is None:
            return nric
        same_name = [p for p in persons.values() if p.has_role(role) and p.name == person.name]
        return person.name if len(same_name) == 1 else nric

    def _tables(self, snapshot: Snapshot) -> List[Tuple[str, List[List[str]]]]:
        persons = snapshot.persons
        tables = []
        for file_name, role in (
            (self.files.applicants, Role.APPLICANT),
            (self.files.officers, Role.OFFICER),
            (self.files.managers, Role.MANAGER),
        ):
            tables.append(self._table(file_name, PERSON_HEADER, (
                (PERSON_HEADER, (p.name, p.nric, p.age, p.marital_status.value, p.password))
                for p in sorted(persons.values(), key=lambda p: p.nric) if p.has_role(role)
            )))

        project_rows = []
        for project in sorted(snapshot.projects.values(), key=lambda p: p.name):
            if len(project.flats) > FLAT_TYPE_COLUMNS:
                raise ValidationError(
                    message=f"{project.name} offers more than {FLAT_TYPE_COLUMNS} flat types",
                    context={"file": self.files.projects, "id": project.name, "field": "flats"},
                )
            triples: List[object] = []
            for flat_type, offer in project.flats.items():
                triples += [flat_type.value, offer.total_units, _fmt_price(offer.price)]
            triples += [""] * (3 * FLAT_TYPE_COLUMNS - len(triples))
            officers = [self._ref(n, persons, Role.OFFICER) for n in project.officers]
            values = [
                project.name, project.neighborhood, *triples,
                project.opening_date.isoformat(), project.closing_date.isoformat(),
                self._ref(project.manager_nric, persons, Role.MANAGER), project.officer_slots,
                *(officers or [""]),
            ]
            fields = list(PROJECT_HEADER[:PROJECT_FIXED_COLUMNS]) + ["Officers"] * (len(values) - PROJECT_FIXED_COLUMNS)
            project_rows.append((fields, values))
        tables.append(self._table(self.files.projects, PROJECT_HEADER, project_rows))

        tables.append(self._table(self.files.visibility, VISIBILITY_HEADER, (
            (VISIBILITY_HEADER, (p.name, _fmt_bool(p.visible)))
            for p in sorted(snapshot.projects.values(), key=lambda p: p.name)
        )))
        tables.append(self._table(self.files.applications, APPLICATION_HEADER, (
            (APPLICATION_HEADER, (
                a.application_id, a.applicant_nric, a.project_name,
                a.flat_type.value if a.flat_type else NULL, a.status.value,
            ))
            for a in sorted(snapshot.applications.values(), key=lambda a: a.application_id)
        )))
        tables.append(self._table(self.files.registrations, REGISTRATION_HEADER, (
            (REGISTRATION_HEADER, (
                r.registration_id, r.officer_nric, r.project_name,
                r.registration_date.isoformat(), r.status.value,
            ))
            for r in sorted(snapshot.registrations.values(), key=lambda r: r.registration_id)
        )))
        tables.append(self._table(self.files.enquiries, ENQUIRY_HEADER, (
            (ENQUIRY_HEADER, (
                e.enquiry_id, e.creator_nric, e.project_name, e.message, e.reply or "",
                _fmt_time(e.created_at), _fmt_time(e.replied_at), e.replier_nric or "",
            ))
            for e in sorted(snapshot.enquiries.values(), key=lambda e: e.enquiry_id)
        )))
        tables.append(self._table(self.files.withdrawals, WITHDRAWAL_HEADER, (
            (WITHDRAWAL_HEADER, (
                w.request_id, w.application_id, _fmt_time(w.requested_at), _fmt_bool(w.is_approved),
                _fmt_time(w.processed_at), w.processed_by or "",
            ))
            for w in sorted(snapshot.withdrawals.values(), key=lambda w: w.request_id)
        )))
        return tables

    def save(self, snapshot: Snapshot) -> None:
        """
        Write every file to a temporary sibling, then swap them all into place.

        The swap itself is not atomic across files. A marker file brackets it,
        so a save that fails midway leaves the marker behind and ``load``
        refuses the mixed directory instead of reading it. The next successful
        save clears it.
        """
        tables = self._tables(snapshot)
        written: List[Tuple[Path, Path]] = []
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            for file_name, rows in tables:
                target = self.data_dir / file_name
                temp = target.with_name(target.name + ".tmp")
                with open(temp, "w", encoding="utf-8", newline="") as f:
                    csv.writer(f, **_DIALECT).writerows(rows)
                written.append((temp, target))
            marker = self.data_dir / SWAP_MARKER
            marker.write_text("\n".join(target.name for _, target in written) + "\n", encoding="utf-8")
            for temp, target in written:
                os.replace(temp, target)
            marker.unlink()
        except (OSError, csv.Error) as e:
            for temp, _ in written:
                temp.unlink(missing_ok=True)
            logger.error("CSV snapshot save to %s failed: %s", self.data_dir, e)
            raise PersistenceError(
                message=f"Failed to write snapshot to {self.data_dir}: {e}",
                context={"data_dir": str(self.data_dir)},
            ) from e
        logger.debug("Saved CSV snapshot to %s", self.data_dir)

    def close(self) -> None:
        pass
