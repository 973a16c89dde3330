"""
Data Manager for Staff Scheduling System

Handles all file I/O operations, JSON persistence, and CRUD operations
for the employee registry, the shift catalog, and the ledger of
generated report files.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .config import APP_VERSION, DAYS_OF_WEEK, DEFAULT_DATA_FILE, MAX_WORKING_DAYS

logger = logging.getLogger(__name__)


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


@dataclass
class Shift:
    """A named shift and the number of workers it needs each day"""
    label: str
    required_workers: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "requiredWorkers": self.required_workers
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Shift':
        return cls(
            label=data["label"],
            required_workers=int(data.get("requiredWorkers", 0))
        )


@dataclass
class Employee:
    """Employee record with specializations, preferred days and weekly quota"""
    name: str
    specializations: List[str] = field(default_factory=list)
    working_days: int = 1
    preferred_days: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "specializations": list(self.specializations),
            "workingDays": self.working_days,
            "preferredDays": list(self.preferred_days)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        return cls(
            name=data["name"],
            specializations=list(data.get("specializations", [])),
            working_days=int(data.get("workingDays", 0)),
            preferred_days=list(data.get("preferredDays", []))
        )


class DataManager:
    """Manages all data persistence and CRUD operations"""

    def __init__(self, data_file: str = str(DEFAULT_DATA_FILE)):
        self.data_file = Path(data_file)
        self.data = self._load_or_create_data()

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                    return self._validate_and_migrate_data(data)
            except (json.JSONDecodeError, IOError, DataFileCorruptedError) as e:
                logger.error(f"Error loading main data file {self.data_file}: {e}")
                if backup_file.exists():
                    return self._recover_from_backup(backup_file)
                raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
        elif backup_file.exists():
            logger.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)
        else:
            logger.info("No data file found, creating default data")
            return self._create_default_data()

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            with open(backup_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            data = self._validate_and_migrate_data(data)
            # Restore backup to main file
            backup_file.replace(self.data_file)
            logger.info("Successfully recovered data from backup")
            return data
        except (json.JSONDecodeError, IOError, DataFileCorruptedError) as backup_e:
            logger.error(f"Backup file also corrupted: {backup_e}")
            logger.info("Creating default data due to corrupted files")
            return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and migrate data structure to current version"""
        if not isinstance(data, dict):
            raise DataFileCorruptedError(f"Unexpected top-level JSON type in {self.data_file}")

        default_data = self._create_default_data()

        # Merge with defaults to ensure all keys exist
        for key in default_data:
            if key not in data:
                data[key] = default_data[key]

        # Older files stored shifts as bare labels
        data["shifts"] = [
            {"label": item, "requiredWorkers": 0} if isinstance(item, str) else item
            for item in data.get("shifts", [])
        ]

        return data

    def _create_default_data(self) -> Dict[str, Any]:
        """Create default data structure"""
        return {
            "settings": {
                "appVersion": APP_VERSION,
                "lastSaved": None,
                "dataFile": str(self.data_file)
            },
            "shifts": [],  # [{label, requiredWorkers}]
            "employees": [],  # [{name, specializations, workingDays, preferredDays}]
            "generated_files": []  # [{name, type, path, date}]
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            with open(self.data_file, 'r', encoding='utf-8') as f:
                saved_data = json.load(f)

            required_keys = ["settings", "shifts", "employees", "generated_files"]
            for key in required_keys:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.data.get("settings", {}).get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self.data.setdefault("settings", {})["lastSaved"] = datetime.now().isoformat(timespec="seconds")

            # Create backup of existing file if it exists
            if self.data_file.exists():
                self.data_file.replace(backup_file)

            # Write to temporary file first (atomic operation)
            temp_file = self.data_file.with_suffix('.tmp')

            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)

            temp_file.replace(self.data_file)

            self._validate_saved_data()

            return True

        except DataValidationError as e:
            logger.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                try:
                    backup_file.replace(self.data_file)
                except OSError as restore_e:
                    logger.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError) as e:
            logger.error(f"I/O error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        finally:
            # Clean up temp file if it still exists
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logger.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    # Shift Catalog
    def get_shifts(self) -> List[Shift]:
        """Get shifts in catalog order"""
        return [Shift.from_dict(item) for item in self.data.get("shifts", [])]

    def get_shift_labels(self) -> List[str]:
        return [item["label"] for item in self.data.get("shifts", [])]

    def get_required_workers(self) -> Dict[str, int]:
        """Get required-worker count per shift label"""
        return {shift.label: shift.required_workers for shift in self.get_shifts()}

    def add_shift(self, label: str, required_workers: int = 0) -> bool:
        """Add a shift to the catalog; existing labels are left untouched"""
        label = (label or "").strip()
        if not label:
            raise DataValidationError("Shift label must not be empty")
        self._check_worker_count(required_workers)

        if label in self.get_shift_labels():
            logger.info(f"Shift '{label}' already exists, ignoring")
            return False

        self.data.setdefault("shifts", []).append(Shift(label, required_workers).to_dict())
        logger.info(f"Added shift '{label}' requiring {required_workers} worker(s)")
        return True

    def set_required_workers(self, label: str, required_workers: int):
        """Set the daily headcount for a shift"""
        self._check_worker_count(required_workers)
        for shift_data in self.data.get("shifts", []):
            if shift_data["label"] == label:
                shift_data["requiredWorkers"] = required_workers
                return
        raise DataValidationError(f"Unknown shift '{label}'")

    def remove_shift(self, label: str) -> bool:
        """Remove a shift and drop it from every employee's specializations.

        Refused while any employee has this shift as their only specialization.
        """
        shifts = self.data.get("shifts", [])
        remaining = [item for item in shifts if item["label"] != label]
        if len(remaining) == len(shifts):
            return False

        employees = self.data.get("employees", [])
        stranded = [emp_data["name"] for emp_data in employees
                    if set(emp_data.get("specializations", [])) == {label}]
        if stranded:
            raise DataValidationError(
                f"Cannot remove shift '{label}': it is the only specialization of {', '.join(stranded)}"
            )

        self.data["shifts"] = remaining
        for emp_data in employees:
            if label in emp_data.get("specializations", []):
                emp_data["specializations"] = [s for s in emp_data["specializations"] if s != label]
        return True

    @staticmethod
    def _check_worker_count(required_workers: int):
        if isinstance(required_workers, bool) or not isinstance(required_workers, int):
            raise DataValidationError(f"Required workers must be an integer, got {required_workers!r}")
        if required_workers < 0:
            raise DataValidationError(f"Required workers must not be negative, got {required_workers}")

    # Employee Registry
    def get_employees(self) -> List[Employee]:
        """Get list of employees in registry order"""
        return [Employee.from_dict(emp_data) for emp_data in self.data.get("employees", [])]

    def get_employee(self, name: str) -> Optional[Employee]:
        """Get employee by name"""
        for emp_data in self.data.get("employees", []):
            if emp_data["name"] == name:
                return Employee.from_dict(emp_data)
        return None

    def add_employee(self, name: str, specializations: Iterable[str], working_days: int,
                     preferred_days: Iterable[str]) -> Employee:
        """Add new employee"""
        employee = Employee(
            name=(name or "").strip(),
            specializations=list(specializations),
            working_days=working_days,
            preferred_days=list(preferred_days)
        )
        self._validate_employee(employee)

        self.data.setdefault("employees", []).append(employee.to_dict())
        logger.info(f"Added employee '{employee.name}'")
        return employee

    def edit_employee(self, name: str, new_name: str = None, specializations: Iterable[str] = None,
                      working_days: int = None, preferred_days: Iterable[str] = None) -> bool:
        """Update employee information"""
        employees = self.data.get("employees", [])
        for index, emp_data in enumerate(employees):
            if emp_data["name"] != name:
                continue

            employee = Employee.from_dict(emp_data)
            if new_name is not None:
                employee.name = new_name.strip()
            if specializations is not None:
                employee.specializations = list(specializations)
            if working_days is not None:
                employee.working_days = working_days
            if preferred_days is not None:
                employee.preferred_days = list(preferred_days)

            self._validate_employee(employee, replacing=name)
            employees[index] = employee.to_dict()
            return True
        return False

    def remove_employee(self, name: str) -> bool:
        """Remove employee (hard delete)"""
        employees = self.data.get("employees", [])
        for emp_data in employees:
            if emp_data["name"] == name:
                employees.remove(emp_data)
                logger.info(f"Removed employee '{name}'")
                return True
        return False

    def _validate_employee(self, employee: Employee, replacing: Optional[str] = None):
        if not employee.name:
            raise DataValidationError("Employee name must not be empty")

        taken = {emp["name"] for emp in self.data.get("employees", []) if emp["name"] != replacing}
        if employee.name in taken:
            raise DataValidationError(f"Employee '{employee.name}' already exists")

        if not employee.specializations:
            raise DataValidationError(f"Employee '{employee.name}' needs at least one specialization")
        known_shifts = set(self.get_shift_labels())
        unknown = [s for s in employee.specializations if s not in known_shifts]
        if unknown:
            raise DataValidationError(f"Unknown shift(s) for '{employee.name}': {', '.join(unknown)}")
        if len(set(employee.specializations)) != len(employee.specializations):
            raise DataValidationError(f"Duplicate specializations for '{employee.name}'")

        if isinstance(employee.working_days, bool) or not isinstance(employee.working_days, int):
            raise DataValidationError(f"Working days must be an integer, got {employee.working_days!r}")
        if not 1 <= employee.working_days <= MAX_WORKING_DAYS:
            raise DataValidationError(
                f"Working days must be between 1 and {MAX_WORKING_DAYS}, got {employee.working_days}"
            )

        if not employee.preferred_days:
            raise DataValidationError(f"Employee '{employee.name}' needs at least one preferred day")
        bad_days = [d for d in employee.preferred_days if d not in DAYS_OF_WEEK]
        if bad_days:
            raise DataValidationError(f"Invalid weekday label(s): {', '.join(bad_days)}")
        # Keep weekday order stable regardless of input order
        employee.preferred_days = [d for d in DAYS_OF_WEEK if d in employee.preferred_days]

    # Generated files
    def record_generated_file(self, name: str, file_type: str, path: str) -> Dict[str, str]:
        """Remember an exported report so it can be listed and deleted later"""
        entry = {
            "name": name,
            "type": file_type,
            "path": str(path),
            "date": datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        }
        files = self.data.setdefault("generated_files", [])
        # Re-exporting on the same day overwrites the same file name
        files[:] = [f for f in files if f["name"] != name]
        files.append(entry)
        return entry

    def get_generated_files(self) -> List[Dict[str, str]]:
        return list(self.data.get("generated_files", []))

    def delete_generated_file(self, name: str) -> bool:
        """Forget a generated file and remove it from disk if still present"""
        files = self.data.get("generated_files", [])
        for entry in files:
            if entry["name"] == name:
                files.remove(entry)
                path = Path(entry.get("path", ""))
                if entry.get("path") and path.exists():
                    try:
                        path.unlink()
                    except OSError as e:
                        logger.error(f"Failed to delete generated file {path}: {e}", exc_info=True)
                return True
        return False
