"""komodor-rca command-line interface.

Usage (typically wired up as a k9s plugin)::

    komodor-rca --kind Deployment --namespace prod --name api \\
        --cluster my-local-cluster --api-key $KOMODOR_API_KEY

Every option falls back to an environment variable (see
:mod:`komodor_rca.config`), which may also be set in a ``.env``
file. Without ``--background`` the session is followed until it
completes or times out; ``--background`` only triggers it, unless
``--poll`` is also given.

Exit codes: 0 on success or timeout, 1 on any error, 130 on Ctrl+C.
"""

from __future__ import annotations

import asyncio

import click

from komodor_rca import __version__
from komodor_rca.app import EXIT_FAILURE, EXIT_OK, run_rca
from komodor_rca.config import load_config, load_env_files
from komodor_rca.errors import ConfigError
from komodor_rca.observability.logging import get_logger, setup_logging
from komodor_rca.observability.metrics import write_metrics
from komodor_rca.render import create_sink

_EXIT_INTERRUPTED = 130


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--kind", default=None, help="Kubernetes resource kind (Pod, Deployment, Service, ...).  [env: KIND]")
@click.option("--namespace", default=None, help="Kubernetes namespace.  [env: NAMESPACE]")
@click.option("--name", default=None, help="Kubernetes resource name.  [env: NAME]")
@click.option("--api-key", default=None, help="Komodor API key.  [env: KOMODOR_API_KEY]")
@click.option("--cluster", default=None, help="Local Kubernetes cluster name.  [env: KOMODOR_CLUSTER_NAME]")
@click.option(
    "--base-url",
    default=None,
    help="Komodor API base URL.  [env: KOMODOR_BASE_URL, default: https://api.komodor.com]",
)
@click.option("--poll", is_flag=True, default=False, help="Poll for RCA completion (also in background mode).")
@click.option("--background", is_flag=True, default=False, help="Trigger the RCA and exit without polling.")
@click.option(
    "--ui",
    type=click.Choice(["console", "screen"], case_sensitive=False),
    default=None,
    help="Renderer: line console or interactive screen.  [env: KOMODOR_UI, default: console]",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log file verbosity.  [env: KOMODOR_LOG_LEVEL, default: info]",
)
@click.version_option(__version__, prog_name="komodor-rca")
@click.pass_context
def cli(
    ctx: click.Context,
    kind: str | None,
    namespace: str | None,
    name: str | None,
    api_key: str | None,
    cluster: str | None,
    base_url: str | None,
    poll: bool,
    background: bool,
    ui: str | None,
    log_level: str | None,
) -> None:
    """Trigger a Komodor root cause analysis and follow it live."""
    env_files = load_env_files()
    try:
        config = load_config(
            api_key=api_key,
            cluster=cluster,
            base_url=base_url,
            namespace=namespace,
            name=name,
            kind=kind,
            ui=ui,
            log_level=log_level,
        )
    except ConfigError as exc:
        raise click.ClickException(f"Configuration error: {exc}") from exc

    setup_logging(config.log_level, config.log_file)
    log = get_logger("cli")
    log.info("komodor_rca_starting", version=__version__, ui=config.ui)
    if env_files:
        log.debug("env_files_loaded", paths=[str(path) for path in env_files])

    sink = create_sink(config.ui)
    should_poll = poll or not background
    try:
        exit_code = asyncio.run(run_rca(config, sink, poll=should_poll))
        # Outside the event loop, so Ctrl+C at the prompt raises KeyboardInterrupt.
        if exit_code != EXIT_OK or should_poll:
            sink.wait_for_exit()
        sink.close()
    except KeyboardInterrupt:
        sink.close()
        log.info("interrupted")
        click.echo("\nMonitoring stopped.", err=True)
        exit_code = _EXIT_INTERRUPTED
    except Exception as exc:
        sink.close()
        log.exception("unexpected_error")
        click.echo(
            click.style(
                f"Unexpected internal error ({type(exc).__name__}). Details were written to {config.log_file}",
                fg="red",
                bold=True,
            ),
            err=True,
        )
        exit_code = EXIT_FAILURE
    finally:
        if config.metrics_file is not None:
            try:
                write_metrics(config.metrics_file)
            except OSError as exc:
                log.warning("metrics_write_failed", path=str(config.metrics_file), error=str(exc))

    ctx.exit(exit_code)


if __name__ == "__main__":
    cli()
