# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/cli/app.py
from __future__ import annotations

import os
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Optional

import typer
import yaml
from pydantic import ValidationError

from archconfigs.archinstall import config_urls as render_config_urls
from archconfigs.archinstall import validate_configs as run_validation
from archconfigs.config.loader import load_profile
from archconfigs.config.resolve import env_flag, resolve_context
from archconfigs.logging.log import default_log_dir, init_logging, shutdown_logging
from archconfigs.observers.console import ConsoleObserver
from archconfigs.observers.dispatcher import EventBus
from archconfigs.observers.jsonfile import JsonFileObserver
from archconfigs.observers.logger import LoggerObserver
from archconfigs.observers.events import new_ctx
from archconfigs.pipeline.errors import FatalPrecondition, OperatorAbort, ProvisionError, StepFailure
from archconfigs.pipeline.planner import DependencyOrderError, DuplicateStepError, UnknownDependencyError
from archconfigs.pipeline.preconditions import check_all
from archconfigs.pipeline.report import FOLLOW_UP, render
from archconfigs.pipeline.runner import PipelineRunner
from archconfigs.steps import hyprland, paru, postinstall, preinstall
from archconfigs.steps.common import Toolkit
from archconfigs.system.commands import CommandRunner
from archconfigs.system.hostinfo import HostInfo
from archconfigs.system.prompt import AnswerAll, Prompter
from archconfigs.system.zfs import ZfsClient


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Arch Linux + ZFS + Hyprland provisioning for the Dell XPS 15 9500")

PIPELINES: Dict[str, ModuleType] = {
    preinstall.NAME: preinstall,
    postinstall.NAME: postinstall,
    hyprland.NAME: hyprland,
    paru.NAME: paru,
}

PLAN_ERRORS = (DuplicateStepError, UnknownDependencyError, DependencyOrderError)


def make_runner(timeout: Optional[float], label: str) -> CommandRunner:
    return CommandRunner(timeout=timeout, label=label)


def make_prompter(assume_yes: bool) -> Prompter:
    return AnswerAll(True) if assume_yes else Prompter()


# ------------------------------------------------------------------------------
# Pipeline driver
# ------------------------------------------------------------------------------

def run_pipeline_command(
    pipeline: str,
    *,
    cli: Dict[str, Any],
    profile_path: Optional[Path],
    log_dir: Optional[Path],
    debug: bool,
) -> None:
    """
    Shared body of the four pipeline commands:

      resolve inputs -> preconditions -> runner -> summary

    Exit status: 0 on success or when the operator backs out, 1 on a fatal
    precondition, an invalid step order, or a failed step.
    """
    module = PIPELINES[pipeline]
    logger, run_id, log_path = init_logging(base_dir=log_dir, command=pipeline, verbose=debug)

    typer.echo("")
    typer.secho(f"archconfigs {pipeline}", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo("")

    observers = [
        LoggerObserver(logger),
        JsonFileObserver((log_dir or default_log_dir()) / f"{run_id}.jsonl"),
    ]
    if debug:
        observers.append(ConsoleObserver())
    bus = EventBus(observers=observers)

    assume_yes = bool(cli.get("assume_yes")) or env_flag(os.environ, "ARCHCONFIGS_ASSUME_YES")
    prompter = make_prompter(assume_yes)

    try:
        profile = load_profile(profile_path or os.environ.get("ARCHCONFIGS_PROFILE") or None)

        root = Path(cli.get("root") or "/")
        runner = make_runner(cli.get("timeout"), pipeline)
        host = HostInfo(root)

        def confirm(question: str) -> bool:
            return prompter.confirm(question, default=False)

        # privileges and tools are checked before anything is asked or detected
        check_all(
            module.requirements(profile, host, runner),
            confirm=confirm,
            assume_yes=assume_yes,
            bus=bus,
            run_ctx=new_ctx(pipeline=pipeline, root=str(root), run_id=run_id),
        )

        ctx = resolve_context(
            pipeline,
            profile=profile,
            cli={**cli, "run_id": run_id},
            host=host,
            zfs=ZfsClient(runner),
            prompter=prompter,
        )
        logger.info(
            f"pool={ctx.pool_name} disk={ctx.disk} root={ctx.root} "
            f"user={ctx.target_user or '-'} dry_run={ctx.dry_run}"
        )

        kit = Toolkit.for_context(ctx, runner=runner, sudo=(pipeline == paru.NAME))
        steps = module.build_steps(ctx, kit)
        report = PipelineRunner(ctx, confirm=confirm, bus=bus).run(steps)

        typer.echo("")
        typer.echo(render(report, ctx, FOLLOW_UP[pipeline]))
        logger.info(f"{pipeline} complete: {report.summary()}")

    except OperatorAbort as e:
        logger.warning(f"Aborted by operator: {e}")
        typer.echo(f"Aborted: {e}")
        raise typer.Exit(0)
    except FatalPrecondition as e:
        logger.error(f"Precondition '{e.name}' failed: {e.message}")
        typer.secho(f"ERROR: {e.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except StepFailure as e:
        logger.error(str(e))
        if e.report is not None:
            logger.error(f"completed before failure: {', '.join(e.report.step_ids()) or 'none'} ({e.report.summary()})")
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except PLAN_ERRORS as e:
        logger.error(f"Invalid step order: {e}")
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except FileNotFoundError as e:
        logger.error(str(e))
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except (ValidationError, yaml.YAMLError, ProvisionError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    finally:
        shutdown_logging(logger)


# ------------------------------------------------------------------------------
# Shared options
# ------------------------------------------------------------------------------

ProfileOpt = typer.Option(None, "--profile", help="YAML profile override (deep-merged over the packaged profile)")
RootOpt = typer.Option(Path("/"), "--root", help="Filesystem root the steps operate on")
YesOpt = typer.Option(False, "--yes", "-y", help="Answer yes to every confirmation")
DryRunOpt = typer.Option(False, "--dry-run", help="Probe only; report what would change")
DebugOpt = typer.Option(False, "--debug")
LogDirOpt = typer.Option(None, "--log-dir", help="Directory for run logs (default ~/.archconfigs/logs)")
TimeoutOpt = typer.Option(None, "--timeout", help="Per-command timeout in seconds (default: wait)")


@app.command("preinstall")
def preinstall_cmd(
    pool: Optional[str] = typer.Option(None, "--pool", help="ZFS pool name [env ZFS_POOL_NAME]"),
    disk: Optional[str] = typer.Option(None, "--disk", help="Target disk [env ZFS_DISK]"),
    swap_size: Optional[str] = typer.Option(None, "--swap-size", help="Swap zvol size, e.g. 16G [env ZFS_SWAP_SIZE]"),
    github_user: Optional[str] = typer.Option(None, "--github-user", help="GitHub account for SSH keys [env GITHUB_SSH_USER]"),
    mount_root: Path = typer.Option(Path("/mnt"), "--mount-root"),
    profile: Optional[Path] = ProfileOpt,
    root: Path = RootOpt,
    yes: bool = YesOpt,
    dry_run: bool = DryRunOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
    timeout: Optional[float] = TimeoutOpt,
):
    """archiso stage: ZFS modules, archzfs repo, partitions, pool, datasets, mounts."""
    run_pipeline_command(
        preinstall.NAME,
        cli=dict(pool=pool, disk=disk, swap_size=swap_size, github_user=github_user, mount_root=mount_root,
                 root=root, assume_yes=yes, dry_run=dry_run, timeout=timeout),
        profile_path=profile,
        log_dir=log_dir,
        debug=debug,
    )


@app.command("postinstall")
def postinstall_cmd(
    pool: Optional[str] = typer.Option(None, "--pool", help="ZFS pool name [env ZFS_POOL_NAME; detected]"),
    root_dataset: Optional[str] = typer.Option(None, "--root-dataset", help="Root dataset (default: pool bootfs)"),
    profile: Optional[Path] = ProfileOpt,
    root: Path = RootOpt,
    yes: bool = YesOpt,
    dry_run: bool = DryRunOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
    timeout: Optional[float] = TimeoutOpt,
):
    """chroot stage: mkinitcpio hooks, hostid, ZFS services, systemd-boot entries."""
    run_pipeline_command(
        postinstall.NAME,
        cli=dict(pool=pool, root_dataset=root_dataset, root=root, assume_yes=yes, dry_run=dry_run, timeout=timeout),
        profile_path=profile,
        log_dir=log_dir,
        debug=debug,
    )


@app.command("hyprland")
def hyprland_cmd(
    user: Optional[str] = typer.Option(None, "--user", help="Target user [env SUDO_USER; uid 1000]"),
    github_user: Optional[str] = typer.Option(None, "--github-user", help="GitHub account for SSH keys [env GITHUB_SSH_USER]"),
    profile: Optional[Path] = ProfileOpt,
    root: Path = RootOpt,
    yes: bool = YesOpt,
    dry_run: bool = DryRunOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
    timeout: Optional[float] = TimeoutOpt,
):
    """Drivers and hardware configuration for Hyprland on the XPS 15 9500."""
    run_pipeline_command(
        hyprland.NAME,
        cli=dict(user=user, github_user=github_user, root=root, assume_yes=yes, dry_run=dry_run, timeout=timeout),
        profile_path=profile,
        log_dir=log_dir,
        debug=debug,
    )


@app.command("paru")
def paru_cmd(
    build_dir: Optional[Path] = typer.Option(None, "--build-dir", help="Build directory [env PARU_BUILD_DIR]"),
    profile: Optional[Path] = ProfileOpt,
    root: Path = RootOpt,
    yes: bool = YesOpt,
    dry_run: bool = DryRunOpt,
    debug: bool = DebugOpt,
    log_dir: Optional[Path] = LogDirOpt,
    timeout: Optional[float] = TimeoutOpt,
):
    """Build and configure the paru AUR helper (run as your regular user)."""
    run_pipeline_command(
        paru.NAME,
        cli=dict(build_dir=build_dir, root=root, assume_yes=yes, dry_run=dry_run, timeout=timeout),
        profile_path=profile,
        log_dir=log_dir,
        debug=debug,
    )


# ------------------------------------------------------------------------------
# archinstall helpers
# ------------------------------------------------------------------------------

@app.command("validate-configs")
def validate_configs(
    config_dir: Path = typer.Option(Path("archinstall"), "--config-dir", help="Directory holding archinstall JSON"),
):
    """Check the archinstall JSON files exist and parse."""
    typer.echo("Validating archinstall configuration files...")
    typer.echo("")
    report = run_validation(config_dir)
    for line in report.lines():
        typer.echo(line)
    if not report.ok:
        raise typer.Exit(1)


@app.command("config-urls")
def config_urls(
    user: str = typer.Option("your-username", "--user", envvar="GITHUB_USER"),
    repo: str = typer.Option("archconfigs", "--repo", envvar="GITHUB_REPO"),
    branch: str = typer.Option("main", "--branch", envvar="BRANCH"),
):
    """Print the raw URLs to pass to `archinstall --config`."""
    typer.echo(render_config_urls(user, repo, branch))


if __name__ == "__main__":
    app()
