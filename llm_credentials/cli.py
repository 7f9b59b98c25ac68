"""
Command-line interface for llm-credentials.
"""

import json
import sys
from datetime import datetime, timezone

import click

from .auth import CredentialCache
from .errors import CredentialError
from .logging_utils import log_summary, mask_secret, setup_colored_logging
from .models import AssumedRole, CachedCredential, ServiceAccountFile


def _expires(credential: CachedCredential) -> str:
    if credential.expires_at is None:
        return "never"
    return datetime.fromtimestamp(credential.expires_at, timezone.utc).isoformat()


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    help="Set the logging level.",
)
@click.pass_context
def cli(ctx, log_level):
    """Mint short-lived credentials for cloud LLM providers."""
    setup_colored_logging(log_level)
    ctx.obj = CredentialCache()


@cli.command("service-account")
@click.argument(
    "path",
    required=False,
    envvar="GOOGLE_APPLICATION_CREDENTIALS",
    type=click.Path(dir_okay=False),
)
@click.pass_obj
def service_account(cache, path):
    """Exchange a service account JSON file for an OAuth2 access token.

    PATH defaults to $GOOGLE_APPLICATION_CREDENTIALS. The token is printed
    to stdout.
    """
    if not path:
        click.echo(
            "Error: No service account file given.\n"
            "Pass PATH or set GOOGLE_APPLICATION_CREDENTIALS.",
            err=True,
        )
        sys.exit(1)

    try:
        credential = cache.get_or_refresh(ServiceAccountFile(path=path))
    except CredentialError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    log_summary(
        {
            "source": path,
            "token": mask_secret(credential.secret_payload),
            "expires": _expires(credential),
        },
        title="Service account token",
    )
    click.echo(credential.secret_payload)


@cli.command("assume-role")
@click.option("--role-arn", required=True, help="ARN of the role to assume.")
@click.option("--session-name", "role_session_name", required=True, help="Role session name.")
@click.option("--access-key-id", envvar="AWS_ACCESS_KEY_ID", help="Base access key id.")
@click.option(
    "--secret-access-key", envvar="AWS_SECRET_ACCESS_KEY", help="Base secret access key."
)
@click.option("--session-token", envvar="AWS_SESSION_TOKEN", help="Base session token.")
@click.option(
    "--region",
    envvar=["AWS_REGION", "AWS_DEFAULT_REGION"],
    default="us-east-1",
    show_default=True,
    help="STS region.",
)
@click.option("--external-id", help="External id required by the role trust policy.")
@click.option("--duration", "duration_seconds", type=int, help="Session duration in seconds.")
@click.pass_obj
def assume_role_command(cache, **options):
    """Assume an AWS role and print the temporary credentials as JSON."""
    source = AssumedRole(**{k: v for k, v in options.items() if v is not None})
    try:
        credential = cache.get_or_refresh(source)
    except CredentialError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    session = credential.secret_payload
    log_summary(
        {
            "role": source.role_arn,
            "access key": session.access_key_id,
            "expires": _expires(credential),
        },
        title="Assumed role",
    )
    click.echo(
        json.dumps(
            {
                "AccessKeyId": session.access_key_id,
                "SecretAccessKey": session.secret_access_key,
                "SessionToken": session.session_token,
                "Expiration": session.expiration.isoformat(),
            },
            indent=2,
        )
    )


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
