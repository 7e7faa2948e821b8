"""
Logger utility for the Deadlock Toolkit.

Provides operation-by-operation logging with verbosity levels.
"""

from typing import List, Optional
from datetime import datetime


class EngineLogger:
    """
    Logger for engine decisions and deadlock lifecycle events.

    Format: "P1 requests R0[1] - GRANTED/DENIED (reason)"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, echo: bool = True):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
            echo: Print messages to the console
        """
        self.verbose = verbose
        self.echo = echo
        self.log_file = log_file
        self.file_handle = None
        self.history: List[str] = []

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Deadlock Toolkit Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)
        self.history.append(formatted)

        if self.echo:
            print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_request(
        self,
        pid: int,
        resource_type: int,
        amount: int,
        granted: bool,
        reason: str
    ) -> None:
        """
        Log a resource request.

        Args:
            pid: Process index
            resource_type: Resource type index
            amount: Amount requested
            granted: Whether request was granted
            reason: Reason for decision
        """
        status = "GRANTED" if granted else "DENIED"
        self.log(f"P{pid} requests R{resource_type}[{amount}] - {status} ({reason})")

    def log_release(self, pid: int, resource_type: int, amount: int) -> None:
        self.log(f"P{pid} releases R{resource_type}[{amount}]")

    def log_deadlock(self, deadlocked_pids: list) -> None:
        """
        Log deadlock detection.

        Args:
            deadlocked_pids: List of process indices in deadlock
        """
        pids_str = ", ".join(f"P{pid}" for pid in deadlocked_pids)
        self.log(f"DEADLOCK DETECTED - Processes in deadlock: [{pids_str}]", "warning")

    def log_recovery(self, strategy: str, message: str) -> None:
        """
        Log recovery action.

        Args:
            strategy: Resolution strategy label
            message: Description of what was released
        """
        self.log(f"RECOVERY ({strategy}) - {message}")

    def log_navigation(self, direction: str, index: int, size: int) -> None:
        self.log(f"History {direction}: state {index + 1}/{size}", "debug")

    def log_system_state(self, state_str: str) -> None:
        """
        Log system state snapshot.

        Args:
            state_str: Formatted system state
        """
        if self.verbose:
            self.log(f"System State:\n{state_str}", "debug")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
