# main.py
import click

from core.config import RigConfig, SendFailurePolicy
from core.constants import DEFAULT_LOGLEVEL, FAKE_BACKEND
from core.controller import RigController
from core.log import shutdown_log, start_log
from ui_cli.app import App


@click.command()
@click.option("--fake", is_flag=True, help="Use the instrument simulator instead of VISA")
@click.option("--strict", is_flag=True, help="Abort calibration when any command fails")
@click.option("--srq-timeout", type=click.FloatRange(min=0), default=60.0, show_default=True,
              help="Seconds to wait for a service request (0 = wait forever)")
@click.option("--log-level", default=DEFAULT_LOGLEVEL, show_default=True)
@click.option("--log-stdout", is_flag=True, help="Also log to stderr")
def cli(fake, strict, srq_timeout, log_level, log_stdout):
    """HP 8902A / HP 8673B measurement rig."""
    start_log(log_to_stdout=log_stdout, log_level=log_level)
    config = RigConfig(
        srq_timeout_s=srq_timeout or None,
        send_failure_policy=SendFailurePolicy.ABORT if strict else SendFailurePolicy.IGNORE,
    )
    if fake:
        config.backends = [FAKE_BACKEND]
    controller = RigController(config)
    app = App()
    app.set_controller(controller)
    try:
        app.mainloop()
    finally:
        shutdown_log()


if __name__ == "__main__":
    cli()
