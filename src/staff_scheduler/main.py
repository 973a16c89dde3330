"""
Main Entry Point for Staff Scheduling System

Integrates all modules behind a command-line interface with
comprehensive error handling and logging.
"""

import argparse
import sys
import logging
from pathlib import Path
from datetime import datetime
from typing import List, Optional

from .config import DAYS_OF_WEEK, DEFAULT_DATA_FILE, DEFAULT_LOG_DIR, EXPORT_EXTENSIONS, LOG_FORMAT
from .data_manager import DataManager, DataManagerError
from .scheduler_logic import ShiftScheduler, SchedulerError, RandomOrdering
from .reporting import ExportManager


def setup_logging(log_dir: Path = DEFAULT_LOG_DIR, verbose: bool = False):
    """Setup application logging"""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"staff_scheduler_{datetime.now().strftime('%Y%m%d')}.log"

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.INFO if verbose else logging.WARNING)

    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file),
            stream_handler
        ]
    )

    return logging.getLogger(__name__)


def check_dependencies():
    """Check if all required dependencies are available"""
    required_modules = [
        'pandas',
        'openpyxl',
        'reportlab',
    ]

    missing_modules = []

    for module in required_modules:
        try:
            __import__(module)
        except ImportError:
            missing_modules.append(module)

    if missing_modules:
        error_msg = f"Missing required dependencies: {', '.join(missing_modules)}\n"
        error_msg += "Please install them using: pip install -e ."
        raise ImportError(error_msg)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )
    print(f"An unexpected error occurred: {exc_type.__name__}: {exc_value}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staff-scheduler",
        description="Assign employees to shifts by specialization, preferred days and weekly quotas."
    )
    parser.add_argument(
        "--data-file",
        type=Path,
        default=DEFAULT_DATA_FILE,
        help=f"JSON file holding shifts, employees and generated files (default: {DEFAULT_DATA_FILE}).",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=DEFAULT_LOG_DIR,
        help=f"Directory for log files (default: {DEFAULT_LOG_DIR}).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log progress to stderr.")

    commands = parser.add_subparsers(dest="command", required=True)

    # shifts
    shift = commands.add_parser("shift", help="Manage the shift catalog.")
    shift_cmds = shift.add_subparsers(dest="action", required=True)
    shift_add = shift_cmds.add_parser("add", help="Add a shift.")
    shift_add.add_argument("label")
    shift_add.add_argument("--workers", type=int, default=0, help="Workers needed each day (default: 0).")
    shift_workers = shift_cmds.add_parser("workers", help="Set workers needed for a shift.")
    shift_workers.add_argument("label")
    shift_workers.add_argument("count", type=int)
    shift_remove = shift_cmds.add_parser("remove", help="Remove a shift.")
    shift_remove.add_argument("label")
    shift_cmds.add_parser("list", help="List shifts.")

    # employees
    employee = commands.add_parser("employee", help="Manage the employee roster.")
    employee_cmds = employee.add_subparsers(dest="action", required=True)
    employee_add = employee_cmds.add_parser("add", help="Add an employee.")
    employee_add.add_argument("name")
    employee_add.add_argument("--spec", dest="specializations", action="append", required=True,
                              help="Shift the employee can work; repeat for several, first listed is tried first.")
    employee_add.add_argument("--days", dest="preferred_days", nargs="+", required=True,
                              choices=DAYS_OF_WEEK, help="Preferred weekdays.")
    employee_add.add_argument("--working-days", type=int, required=True, help="Days per week the employee may work.")
    employee_edit = employee_cmds.add_parser("edit", help="Edit an employee.")
    employee_edit.add_argument("name")
    employee_edit.add_argument("--name", dest="new_name")
    employee_edit.add_argument("--spec", dest="specializations", action="append")
    employee_edit.add_argument("--days", dest="preferred_days", nargs="+", choices=DAYS_OF_WEEK)
    employee_edit.add_argument("--working-days", type=int)
    employee_remove = employee_cmds.add_parser("remove", help="Remove an employee.")
    employee_remove.add_argument("name")
    employee_cmds.add_parser("list", help="List employees.")

    # generation
    generate = commands.add_parser("generate", help="Generate a schedule and optionally export it.")
    generate.add_argument("--start", required=True, help="First day, YYYY-MM-DD.")
    generate.add_argument("--days", type=int, required=True, help="Number of days to schedule.")
    generate.add_argument("--operating-days", type=int, required=True,
                          help="Business operating days per week; quotas renew after this many days.")
    generate.add_argument("--seed", type=int, default=None, help="Seed the employee shuffle for repeatable output.")
    generate.add_argument("--export", nargs="+", choices=sorted(EXPORT_EXTENSIONS), default=[],
                          help="Export formats to write.")
    generate.add_argument("--output-dir", type=Path, default=Path("."),
                          help="Directory for exported files (default: current directory).")

    # generated files
    files = commands.add_parser("files", help="Manage generated report files.")
    files_cmds = files.add_subparsers(dest="action", required=True)
    files_cmds.add_parser("list", help="List generated files.")
    files_delete = files_cmds.add_parser("delete", help="Delete a generated file.")
    files_delete.add_argument("name")

    return parser


class StaffSchedulerApp:
    """Main application class"""

    def __init__(self, data_file: Path = DEFAULT_DATA_FILE):
        self.logger = logging.getLogger(__name__)
        self.data_file = Path(data_file)
        self.data_manager = None
        self.export_manager = None

    def initialize(self):
        """Initialize application components"""
        self.logger.info("Initializing Staff Scheduler Application")

        check_dependencies()

        self.data_manager = DataManager(str(self.data_file))
        self.logger.info(f"Data manager initialized with {self.data_file}")

        self.export_manager = ExportManager(self.data_manager)

    def run(self, args: argparse.Namespace) -> bool:
        """Run a single command"""
        try:
            self.initialize()
            handler = getattr(self, f"_cmd_{args.command}")
            handler(args)
            self.cleanup()
            return True

        except (DataManagerError, SchedulerError, ValueError) as e:
            self.logger.error(f"Command '{args.command}' failed: {e}")
            print(f"ERROR: {e}", file=sys.stderr)
            return False

    def cleanup(self):
        """Persist registry changes"""
        if self.data_manager:
            self.data_manager.save_data()
            self.logger.info("Data saved successfully")

    def _cmd_shift(self, args):
        dm = self.data_manager
        if args.action == "add":
            if dm.add_shift(args.label, args.workers):
                print(f"Added shift '{args.label}'")
            else:
                print(f"Shift '{args.label}' already exists")
        elif args.action == "workers":
            dm.set_required_workers(args.label, args.count)
            print(f"'{args.label}' now needs {args.count} worker(s)")
        elif args.action == "remove":
            if not dm.remove_shift(args.label):
                raise ValueError(f"Unknown shift '{args.label}'")
            print(f"Removed shift '{args.label}'")
        else:
            for shift in dm.get_shifts():
                print(f"{shift.label}\t{shift.required_workers}")

    def _cmd_employee(self, args):
        dm = self.data_manager
        if args.action == "add":
            dm.add_employee(args.name, args.specializations, args.working_days, args.preferred_days)
            print(f"Added employee '{args.name}'")
        elif args.action == "edit":
            updated = dm.edit_employee(
                args.name,
                new_name=args.new_name,
                specializations=args.specializations,
                working_days=args.working_days,
                preferred_days=args.preferred_days
            )
            if not updated:
                raise ValueError(f"Unknown employee '{args.name}'")
            print(f"Updated employee '{args.name}'")
        elif args.action == "remove":
            if not dm.remove_employee(args.name):
                raise ValueError(f"Unknown employee '{args.name}'")
            print(f"Removed employee '{args.name}'")
        else:
            for emp in dm.get_employees():
                print(f"{emp.name}\t{', '.join(emp.specializations)}\t"
                      f"{emp.working_days} day(s)/week\t{' '.join(emp.preferred_days)}")

    def _cmd_generate(self, args):
        scheduler = ShiftScheduler(self.data_manager, ordering=RandomOrdering(args.seed))
        result = scheduler.generate_schedule(args.start, args.days, args.operating_days)

        frame = self.export_manager.report_generator.create_schedule_dataframe(result.schedule)
        print(frame.to_string(index=False))
        print(result.message)

        for slot in result.understaffed:
            self.logger.warning(
                f"Understaffed: {slot['shift']} on {slot['date']} ({slot['assigned']}/{slot['required']})"
            )

        if args.export:
            results = self.export_manager.batch_export(result, str(args.output_dir), args.export)
            failed = [fmt for fmt, path in results.items() if not path]
            for fmt, path in results.items():
                if path:
                    print(f"Wrote {path}")
            if failed:
                # Keep ledger entries for the formats that were written
                self.cleanup()
                raise ValueError(f"Export failed for: {', '.join(failed)}")

    def _cmd_files(self, args):
        dm = self.data_manager
        if args.action == "delete":
            if not dm.delete_generated_file(args.name):
                raise ValueError(f"Unknown generated file '{args.name}'")
            print(f"Deleted '{args.name}'")
        else:
            for entry in dm.get_generated_files():
                print(f"{entry['name']} - {entry['date']}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    sys.excepthook = handle_exception

    args = build_parser().parse_args(argv)

    logger = setup_logging(args.log_dir, args.verbose)
    logger.info(f"Starting Staff Scheduler: {args.command}")

    app = StaffSchedulerApp(args.data_file)
    success = app.run(args)

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
