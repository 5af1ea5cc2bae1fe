"""Command line interface for eidas-csr.

Subcommands:
- generate: create a key pair and a signed QWAC or QSEAL request
- dump: describe a hex-encoded qualified statement
- inspect: show the subject, extensions and qualified statement of a request
- authorities: list the supported competent authorities
- serve: run the HTTP API
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from eidas_csr import __version__
from eidas_csr.audit.logger import (
    clear_correlation_id,
    configure_audit_logger,
    log_error,
    log_request_rejected,
    set_correlation_id,
)
from eidas_csr.config import Settings, load_config, load_config_from_env
from eidas_csr.crypto.csr import parse_request
from eidas_csr.exceptions import ConfigurationError, EidasError, RequestValidationError
from eidas_csr.qcstatements.authorities import all_authorities
from eidas_csr.qcstatements.codec import describe, dump_from_hex
from eidas_csr.qcstatements.flavors import CertificateFlavor
from eidas_csr.qcstatements.roles import parse_roles
from eidas_csr.request import RequestDetails, generate_request, write_request_files
from eidas_csr.validation.policy import validate_request

EXIT_OK = 0
EXIT_FAIL = 1


def _load_settings(config_path: str | None) -> Settings:
    try:
        if config_path:
            return load_config(config_path)
        return load_config_from_env()
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError.invalid_config(field=config_path or "config", reason=str(e)) from e


# --- Subcommands ---


def cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    """Generate a key pair and signed request, write both as PEM."""
    roles = parse_roles(args.roles) if args.roles is not None else list(settings.defaults.roles)
    flavor = CertificateFlavor.from_name(args.type) if args.type else settings.defaults.flavor

    details = RequestDetails(
        country_code=args.country_code,
        organization_name=args.organization_name,
        organization_id=args.organization_id,
        common_name=args.common_name,
        roles=tuple(roles),
        flavor=flavor,
    )

    result = validate_request(details, settings.validation)
    if not result.valid:
        reason = "; ".join(result.errors)
        log_request_rejected(subject=args.common_name, reason=reason)
        raise RequestValidationError.policy_violation(reason=reason)

    generated = generate_request(details, key_config=settings.key)
    csr_path = Path(args.csr) if args.csr else settings.output.csr_file
    key_path = Path(args.key) if args.key else settings.output.key_file
    fingerprint = write_request_files(generated, csr_path, key_path)

    print(fingerprint)
    return EXIT_OK


def cmd_dump(args: argparse.Namespace, _settings: Settings) -> int:
    """Describe a hex-encoded qualified statement."""
    print(dump_from_hex(args.hex))
    return EXIT_OK


def cmd_inspect(args: argparse.Namespace, _settings: Settings) -> int:
    """Print the content of a PEM or DER request."""
    info = parse_request(Path(args.path).read_bytes())

    print(f"Subject: {info.subject_dn}")
    print(f"Key: {info.key_type} {info.key_size}")
    print(f"Signature valid: {'yes' if info.signature_valid else 'no'}")
    print(f"Extensions: {', '.join(info.extension_oids) or '-'}")
    print(f"Key usage: {', '.join(info.key_usage) or '-'}")
    print(f"Extended key usage: {', '.join(info.extended_key_usage) or '-'}")
    if info.qualified_statement is not None:
        flavor = info.flavor.value if info.flavor else "-"
        print(f"Type: {flavor}")
        print(describe(info.qualified_statement))
    return EXIT_OK


def cmd_authorities(_args: argparse.Namespace, _settings: Settings) -> int:
    """List country codes with their competent authority."""
    for code, authority in sorted(all_authorities().items()):
        print(f"{code}  {authority.id:<10} {authority.name}")
    return EXIT_OK


def cmd_serve(_args: argparse.Namespace, settings: Settings) -> int:
    """Run the HTTP API."""
    from eidas_csr.main import main as serve  # noqa: PLC0415 - keeps FastAPI off the other subcommands

    serve(settings)
    return EXIT_OK


# --- Parser ---


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="eidas-csr",
        description="PSD2 qualified certificate request tooling",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to YAML configuration")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a key and signed request")
    gen.add_argument("--country-code", required=True, help="ISO 3166-1 alpha-2 code, e.g. GB")
    gen.add_argument("--organization-name", required=True, help="Organisation name (O)")
    gen.add_argument("--organization-id", required=True, help="Organisation identifier, e.g. PSDGB-FCA-123456")
    gen.add_argument("--common-name", required=True, help="Common name (CN)")
    gen.add_argument("--roles", help="Comma-separated PSP roles, e.g. PSP_AS,PSP_PI")
    gen.add_argument("--type", help="QWAC or QSEAL")
    gen.add_argument("--csr", help="Output path for the PEM request")
    gen.add_argument("--key", help="Output path for the PEM private key")
    gen.set_defaults(func=cmd_generate)

    dump = sub.add_parser("dump", help="Describe a hex-encoded qualified statement")
    dump.add_argument("hex", help="Hex-encoded qcStatements value")
    dump.set_defaults(func=cmd_dump)

    inspect = sub.add_parser("inspect", help="Show the content of a request")
    inspect.add_argument("path", help="Path to a PEM or DER request")
    inspect.set_defaults(func=cmd_inspect)

    authorities = sub.add_parser("authorities", help="List competent authorities")
    authorities.set_defaults(func=cmd_authorities)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    set_correlation_id()
    try:
        settings = _load_settings(args.config)
        configure_audit_logger(settings.audit)
        return args.func(args, settings)
    except EidasError as e:
        log_error(error=e, context=args.command)
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_FAIL
    except OSError as e:
        log_error(error=e, context=args.command)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAIL
    finally:
        clear_correlation_id()


if __name__ == "__main__":
    sys.exit(main())
