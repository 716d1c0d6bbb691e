"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import binascii
import logging
import re
from pathlib import Path

import typer

from camctl.core.config_loader import load_settings
from camctl.core.errors import CamctlError, NoEndpointAvailableError
from camctl.core.model import DeviceDescriptor
from camctl.core.service import CameraService

app = typer.Typer(help="Camera connectivity checks and preview frames over WebSocket")

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Config file instead of the XDG user config"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every probe and session"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


def _build_service(ctx: typer.Context) -> CameraService:
    if ctx.obj is not None:
        loaded = load_settings(ctx.obj)
        service = CameraService(settings=loaded.settings)
        warnings = loaded.warnings
    else:
        service = CameraService()
        warnings = getattr(service, "load_warnings", ())
    for warning in warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.command("endpoint")
def resolve_endpoint(ctx: typer.Context) -> None:
    """Find the first reachable backend among the configured candidates."""
    try:
        service = _build_service(ctx)
        address = asyncio.run(service.connect())
        typer.echo(f"Connected: {address}")
    except NoEndpointAvailableError as exc:
        typer.echo(f"Error: {exc}", err=True)
        typer.echo("Check your network connection and run 'camctl endpoint' again.", err=True)
        raise typer.Exit(code=1) from None
    except CamctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("devices")
def list_devices(ctx: typer.Context) -> None:
    """List configured camera devices."""
    try:
        service = _build_service(ctx)
        if not service.devices:
            typer.echo("No cameras configured")
            return
        for device in service.devices:
            typer.echo(f"{device.address} {device.name}")
    except CamctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("status")
def refresh_status(
    ctx: typer.Context,
    device: list[str] | None = typer.Option(None, "--device", help="Device address (repeatable)"),
) -> None:
    """Query every selected camera concurrently and print its status."""
    try:
        service = _build_service(ctx)
        targets = service.select_devices(device)
        if not targets:
            typer.echo("No cameras configured")
            return
        statuses = asyncio.run(service.refresh_statuses(targets))
        for target in targets:
            typer.echo(f"{target.address} {target.name} {statuses[target.address].value}")
    except CamctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("preview")
def save_previews(
    ctx: typer.Context,
    out: Path = typer.Option(..., "--out", help="Directory for the JPEG previews"),
    device: list[str] | None = typer.Option(None, "--device", help="Device address (repeatable)"),
) -> None:
    """Refresh statuses, then save one preview frame per online camera."""
    try:
        service = _build_service(ctx)
        targets = service.select_devices(device)
        if not targets:
            typer.echo("No cameras configured")
            return
        outcomes = asyncio.run(service.refresh(targets))
        out.mkdir(parents=True, exist_ok=True)
        for target in targets:
            outcome = outcomes[target.address]
            if outcome.frame is None:
                typer.echo(f"{target.address} {target.name} {outcome.status.value}: no preview")
                continue
            try:
                data = outcome.frame_bytes()
            except (binascii.Error, ValueError):
                typer.echo(f"Warning: {target.address} sent an undecodable preview", err=True)
                continue
            path = out / f"{_UNSAFE_FILENAME_RE.sub('_', target.address)}.jpg"
            path.write_bytes(data)
            typer.echo(f"{target.address} {target.name} -> {path}")
    except CamctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("check")
def check_device(
    ctx: typer.Context,
    address: str,
    name: str | None = typer.Option(None, "--name", help="Display name"),
) -> None:
    """Check a camera that is not configured yet."""
    try:
        service = _build_service(ctx)
        outcome = asyncio.run(service.add_device(DeviceDescriptor(address=address, name=name or address)))
        preview = "preview available" if outcome.frame is not None else "no preview"
        typer.echo(f"{outcome.address} {outcome.status.value} ({preview})")
    except CamctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
