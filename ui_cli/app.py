import click
from loguru import logger

from core.constants import ADDRESS_MAX, ADDRESS_MIN, FREQ_MAX_GHZ, FREQ_MIN_GHZ
from core.errors import InstrumentError
from core.log import format_error_response

CHOICES = [
    "Set GPIB Addresses",
    "Connect to instruments",
    "Calibrate Sensor",
    "Set expected frequency",
    "Exit",
]


def _ok(msg):
    click.secho(msg, fg="green")


def _warn(msg):
    click.secho(msg, fg="yellow")


def _err(msg):
    click.secho(msg, fg="red")


class App:
    """Консольное меню поверх RigController (без логики приборов)."""

    def __init__(self):
        self.controller = None

    def set_controller(self, controller):
        self.controller = controller

    # ---------- экран ----------
    def show_title(self):
        cfg = self.controller.config
        click.clear()
        click.secho("HP8902A Measurements", fg="green", bold=True)
        click.echo("-" * 50)
        click.echo("")
        click.echo("HP8902A Measurements - Simple UI for conducting measurement up to 18GHz")
        click.echo("")
        click.echo(f"HP 8902A GPIB Address: {cfg.meter_address}")
        click.echo(f"HP 8673B GPIB Address: {cfg.source_address}")
        click.echo("")

    def ask_choice(self) -> str:
        for i, name in enumerate(CHOICES, 1):
            click.echo(f"  {i}. {name}")
        idx = click.prompt("Select the test to run?", type=click.IntRange(1, len(CHOICES)))
        return CHOICES[idx - 1]

    # ---------- действия ----------
    def set_addresses(self):
        cfg = self.controller.config
        addr_type = click.IntRange(ADDRESS_MIN, ADDRESS_MAX)
        source = cfg.source_address
        while True:
            meter = click.prompt("Enter HP 8902A GPIB address (Default is 14)?",
                                 default=14, type=addr_type)
            if meter != source:
                break
            _err("8902A and 8673B addresses must be different")
        while True:
            source = click.prompt("Enter HP 8673B GPIB address (Default is 19)?",
                                  default=19, type=addr_type)
            if source != meter:
                break
            _err("8902A and 8673B addresses must be different")
        if self.controller.sessions.any_open():
            self.controller.close()
            _warn("Instruments disconnected to change addresses.")
        self.controller.set_addresses(meter, source)
        _ok("GPIB Addresses updated.")

    def connect(self):
        self.controller.connect()
        _ok("Both instruments connected.")

    def calibrate(self):
        _ok("Starting calibration process...")
        result = self.controller.calibrate(
            lambda: click.confirm(
                "Sensor must be connected to the RF Power Output to continue. Is it connected?"
            )
        )
        if result.ok:
            _ok("Calibration process completed.")
        elif result.error is not None:
            _err(f"Calibration aborted: {result.error}")
        else:
            _warn(f"Calibration completed, but these commands failed: "
                  f"{', '.join(result.failed_commands)}")

    def set_frequency(self):
        if not self.controller.is_connected():
            _err("Error: Both instruments must be connected before setting frequency can proceed.")
            return
        freq = click.prompt(
            f"Enter the expected frequency in GHz ({FREQ_MIN_GHZ} to {FREQ_MAX_GHZ} GHz)?",
            type=click.FloatRange(FREQ_MIN_GHZ, FREQ_MAX_GHZ),
        )
        self.controller.set_expected_frequency(freq)
        _ok("Expected frequency set on both instruments.")

    def mainloop(self):
        actions = {
            "Set GPIB Addresses": self.set_addresses,
            "Connect to instruments": self.connect,
            "Calibrate Sensor": self.calibrate,
            "Set expected frequency": self.set_frequency,
        }
        try:
            while True:
                self.show_title()
                choice = self.ask_choice()
                if choice == "Exit":
                    break
                try:
                    actions[choice]()
                except InstrumentError as e:
                    logger.debug(format_error_response())
                    _err(f"Error: {e}")
                click.pause()
        finally:
            self.controller.close()
