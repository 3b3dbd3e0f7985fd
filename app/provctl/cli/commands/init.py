"""Init command implementation.

Writes a starter manifest for a PHP/MySQL web development box.
"""

import socket
from pathlib import Path
from typing import Annotated

import typer

from provctl.core.manifest import ManifestError, manifest_exists, save_manifest
from provctl.core.paths import get_manifest_path
from provctl.core.reporter import ExitCode
from provctl.models.manifest import (
    CommandSpec,
    Manifest,
    ManifestMeta,
    PackageSpec,
    ServiceSpec,
)
from provctl.utils.formatting import console, print_error, print_info, print_success, print_warning

# Packages of the classic web development stack
STARTER_PACKAGES = (
    "nginx",
    "php-fpm",
    "php-cli",
    "php-dev",
    "php-curl",
    "php-gd",
    "php-intl",
    "php-mbstring",
    "php-mysql",
    "php-xml",
    "mysql-server",
    "redis-server",
    "memcached",
    "samba",
    "imagemagick",
    "git",
    "curl",
    "zip",
    "unzip",
    "make",
    "gcc",
    "htop",
)


def starter_manifest(name: str | None = None) -> Manifest:
    """Build the starter manifest.

    Services whose unit name differs from their package declare the
    package dependency explicitly.

    Args:
        name: Environment name stored in ``[meta]``.
    """
    packages = [PackageSpec(name=package) for package in STARTER_PACKAGES]
    commands = [
        CommandSpec(
            name="nginx-server-key",
            command=["openssl", "genrsa", "-out", "/etc/nginx/server.key", "2048"],
            creates=Path("/etc/nginx/server.key"),
            depends_on=["package:nginx"],
        ),
        CommandSpec(
            name="nginx-server-cert",
            command=[
                "openssl", "req", "-new", "-x509",
                "-key", "/etc/nginx/server.key",
                "-out", "/etc/nginx/server.crt",
                "-days", "3650",
                "-subj", "/CN=*.dev.local",
            ],  # fmt: skip
            creates=Path("/etc/nginx/server.crt"),
            depends_on=["command:nginx-server-key"],
        ),
        CommandSpec(
            name="composer",
            command=[
                "sh", "-c",
                "curl -fsSL https://getcomposer.org/installer"
                " | php -- --filename=composer --install-dir=/usr/bin",
            ],  # fmt: skip
            creates=Path("/usr/bin/composer"),
            network=True,
            depends_on=["package:php-cli", "package:curl"],
        ),
    ]
    services = [
        ServiceSpec(name="nginx", depends_on=["command:nginx-server-cert"]),
        ServiceSpec(name="mysql", depends_on=["package:mysql-server"]),
        ServiceSpec(name="redis-server"),
        ServiceSpec(name="memcached"),
        ServiceSpec(name="smbd", depends_on=["package:samba"]),
    ]
    return Manifest(
        meta=ManifestMeta(
            name=name or socket.gethostname(),
            description="Web development stack",
        ),
        packages=packages,
        commands=commands,
        services=services,
    )


def init_command(
    path: Annotated[
        Path | None,
        typer.Argument(
            help="Where to write the manifest. Defaults to ~/.config/provctl/manifest.toml.",
            show_default=False,
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing manifest.",
        ),
    ] = False,
) -> None:
    """Create a starter manifest.

    The manifest lists a web development stack (nginx, PHP-FPM, MySQL,
    Redis, Memcached, Samba and build tools), a self-signed certificate
    for nginx and the services to keep running. Edit it before applying.

    Examples:
        provctl init
        provctl init ./manifest.toml --force
    """
    output_path = path or get_manifest_path()

    if manifest_exists(output_path):
        if not force:
            print_error(f"Manifest already exists: {output_path}")
            print_info("Use --force to overwrite or pass a different path.")
            raise typer.Exit(code=1)
        print_warning(f"Overwriting existing manifest: {output_path}")

    manifest = starter_manifest()
    try:
        saved_path = save_manifest(manifest, output_path)
    except ManifestError as e:
        print_error(f"Failed to write manifest: {e}")
        raise typer.Exit(code=ExitCode.PLAN_FAILED) from e

    print_success(f"Manifest written to {saved_path}")
    console.print(
        f"  [muted]{len(manifest.packages)} packages, {len(manifest.commands)} commands, "
        f"{len(manifest.services)} services[/muted]"
    )
    print_info("Run 'provctl plan' to see what would change.")
