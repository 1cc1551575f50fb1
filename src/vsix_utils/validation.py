# SPDX-License-Identifier: MIT
"""Manifest validation for VS Code extensions.

Checks the fields the Marketplace and VS Code rely on before packaging.
Validation collects every problem instead of stopping at the first one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import unquote, urlsplit

from .semver import InvalidRangeError, is_valid_range, is_valid_semver, min_version, satisfies

ALLOWED_SPONSOR_PROTOCOLS = ["http", "https"]
VALID_EXTENSION_KINDS = ["ui", "workspace"]
EXTENSION_PRICING = ["Free", "Trial"]
EXTENSION_NAME_REGEX = re.compile(r"^[a-z0-9][a-z0-9\-]*$", re.IGNORECASE)
VSCODE_ENGINE_COMPATIBILITY_REGEX = re.compile(
    r"^\*$|^(\^|>=)?((\d+)|x)\.((\d+)|x)\.((\d+)|x)(-.*)?$"
)
GITHUB_BADGE_URL_REGEX = re.compile(
    r"^https://github\.com/[^/]+/[^/]+/(actions/)?workflows/.*badge\.svg"
)

# Engine versions from which commands, views and friends activate implicitly
IMPLICIT_ACTIVATION_RANGE = ">=1.74"

# Badge hosts accepted by the Marketplace
TRUSTED_BADGE_HOSTS = [
    "api.bintray.com",
    "api.travis-ci.com",
    "api.travis-ci.org",
    "app.fossa.io",
    "badge.buildkite.com",
    "badge.fury.io",
    "badge.waffle.io",
    "badgen.net",
    "badges.frapsoft.com",
    "badges.gitter.im",
    "badges.greenkeeper.io",
    "cdn.travis-ci.com",
    "cdn.travis-ci.org",
    "ci.appveyor.com",
    "circleci.com",
    "cla.opensource.microsoft.com",
    "codacy.com",
    "codeclimate.com",
    "codecov.io",
    "coveralls.io",
    "david-dm.org",
    "deepscan.io",
    "dev.azure.com",
    "docs.rs",
    "flat.badgen.net",
    "gemnasium.com",
    "githost.io",
    "gitlab.com",
    "godoc.org",
    "goreportcard.com",
    "img.shields.io",
    "isitmaintained.com",
    "marketplace.visualstudio.com",
    "nodesecurity.io",
    "opencollective.com",
    "snyk.io",
    "travis-ci.com",
    "travis-ci.org",
    "visualstudio.com",
    "vsmarketplacebadge.apphb.com",
    "www.bithound.io",
    "www.versioneye.com",
]


class TypesCompatibilityError(Exception):
    """Raised when @types/vscode is newer than the declared engine."""

    pass


class ManifestValidationError(Exception):
    """Raised when a manifest fails validation.

    Attributes:
        errors: The validation problems that were found
    """

    def __init__(self, errors: list[ManifestValidation]):
        self.errors = errors
        details = "; ".join(error.message for error in errors)
        super().__init__(f"invalid extension manifest: {details}")


class ManifestValidationType(str, Enum):
    """Kinds of manifest validation problems."""

    MISSING_FIELD = "MISSING_FIELD"
    INVALID_VALUE = "INVALID_VALUE"
    INVALID_PRICING = "INVALID_PRICING"
    VSCODE_TYPES_INCOMPATIBILITY = "VSCODE_TYPES_INCOMPATIBILITY"
    INVALID_ICON = "INVALID_ICON"
    INVALID_BADGE_URL = "INVALID_BADGE_URL"
    UNTRUSTED_HOST = "UNTRUSTED_HOST"
    DEPENDS_ON_VSCODE_IN_DEPENDENCIES = "DEPENDS_ON_VSCODE_IN_DEPENDENCIES"
    INVALID_EXTENSION_KIND = "INVALID_EXTENSION_KIND"
    INVALID_SPONSOR_URL = "INVALID_SPONSOR_URL"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ManifestValidation:
    """A single validation problem.

    Attributes:
        type: Kind of problem
        message: Human-readable description
        field: Manifest field the problem refers to, if any
        value: Offending value, if relevant
    """

    type: ManifestValidationType
    message: str
    field: Optional[str] = None
    value: Optional[str] = None


def _major_minor(version_range: str) -> tuple[int, int]:
    """Extract major and minor from a range like ``^1.74.0`` or ``1.x``."""
    stripped = re.sub(r"^\D+", "", version_range).replace("x", "0")
    parts = stripped.split(".")

    def number(index: int) -> int:
        if index >= len(parts):
            return 0
        match = re.match(r"\d+", parts[index])
        return int(match.group()) if match else 0

    if not parts or not re.match(r"\d+", parts[0]):
        raise TypesCompatibilityError("invalid engine or types version")
    return number(0), number(1)


def validate_vscode_types_compatibility(engine_version: str, types_version: str) -> None:
    """Check that @types/vscode does not target a newer VS Code than the engine.

    Only major and minor components are compared. An engine of ``*`` accepts
    any types version.

    Args:
        engine_version: ``engines.vscode`` value (e.g. ``^1.70.0``)
        types_version: ``@types/vscode`` version (e.g. ``1.70.0``)

    Raises:
        TypesCompatibilityError: If either version is invalid, or the types
            version is higher than the engine version
    """
    if engine_version == "*":
        return

    if not is_valid_range(engine_version):
        raise TypesCompatibilityError(f"invalid engine version '{engine_version}'")
    if not is_valid_range(types_version):
        raise TypesCompatibilityError(f"invalid types version '{types_version}'")

    engine_major, engine_minor = _major_minor(engine_version)
    types_major, types_minor = _major_minor(types_version)

    if types_major > engine_major or (types_major == engine_major and types_minor > engine_minor):
        raise TypesCompatibilityError(
            f"@types/vscode version {types_version} is higher than the specified "
            f"engine version {engine_version}"
        )


def _engine_supports_implicit_activation(engine_version: str) -> bool:
    if engine_version == "*":
        return True
    try:
        lowest = min_version(engine_version)
    except InvalidRangeError:
        return False
    return lowest is not None and satisfies(lowest, IMPLICIT_ACTIVATION_RANGE)


def _missing(field: str) -> ManifestValidation:
    return ManifestValidation(
        type=ManifestValidationType.MISSING_FIELD,
        field=field,
        message=f"The `{field}` field is required.",
    )


def _validate_activation(manifest: Mapping[str, Any], engine_version: str) -> list[ManifestValidation]:
    contributes = manifest.get("contributes")
    if not isinstance(contributes, Mapping):
        contributes = {}

    has_activation_events = bool(manifest.get("activationEvents"))
    has_language_events = bool(contributes.get("languages"))
    has_other_events = any(
        contributes.get(key) for key in ("commands", "authentication", "customEditors", "views")
    )
    has_implicit_events = has_language_events or has_other_events
    has_main = bool(manifest.get("main"))
    has_browser = bool(manifest.get("browser"))

    errors: list[ManifestValidation] = []
    if has_activation_events or (
        has_implicit_events and _engine_supports_implicit_activation(engine_version)
    ):
        if not has_main and not has_browser and (has_activation_events or not has_language_events):
            message = "The use of `activationEvents` field requires either `browser` or `main` to be set."
            for field in ("main", "browser"):
                errors.append(
                    ManifestValidation(
                        type=ManifestValidationType.MISSING_FIELD, field=field, message=message
                    )
                )
    elif has_main or has_browser:
        entry = "main" if has_main else "browser"
        errors.append(
            ManifestValidation(
                type=ManifestValidationType.MISSING_FIELD,
                field="activationEvents",
                message=f"Manifest needs the 'activationEvents' property, given it has a '{entry}' property.",
            )
        )
    return errors


def _validate_badges(badges: Any) -> list[ManifestValidation]:
    errors: list[ManifestValidation] = []
    if not isinstance(badges, list):
        return errors

    for badge in badges:
        url = badge.get("url") if isinstance(badge, Mapping) else None
        decoded = unquote(str(url or ""))
        parts = urlsplit(decoded)
        is_url = bool(parts.scheme and parts.netloc)

        if not is_url:
            errors.append(
                ManifestValidation(
                    type=ManifestValidationType.INVALID_BADGE_URL,
                    field="badges",
                    message=f"The badge URL '{decoded}' must be a valid URL.",
                )
            )
        if not decoded.startswith("https://"):
            errors.append(
                ManifestValidation(
                    type=ManifestValidationType.INVALID_BADGE_URL,
                    field="badges",
                    message="Badge URL must use the 'https' protocol",
                )
            )
        if decoded.endswith(".svg"):
            errors.append(
                ManifestValidation(
                    type=ManifestValidationType.INVALID_BADGE_URL,
                    field="badges",
                    message="SVG badges are not supported. Use PNG badges instead",
                )
            )
        if is_url and not (
            parts.netloc.lower() in TRUSTED_BADGE_HOSTS or GITHUB_BADGE_URL_REGEX.match(decoded)
        ):
            errors.append(
                ManifestValidation(
                    type=ManifestValidationType.UNTRUSTED_HOST,
                    field="badges",
                    message="Badge URL must use a trusted host",
                )
            )
    return errors


def _validate_sponsor(sponsor: Any) -> list[ManifestValidation]:
    if not isinstance(sponsor, Mapping) or sponsor.get("url") is None:
        return []

    parts = urlsplit(str(sponsor["url"]))
    if not parts.scheme or not (parts.netloc or parts.path):
        return [
            ManifestValidation(
                type=ManifestValidationType.INVALID_SPONSOR_URL,
                field="sponsor.url",
                message="The `sponsor.url` field must be a valid URL.",
            )
        ]
    if parts.scheme.lower() not in ALLOWED_SPONSOR_PROTOCOLS:
        return [
            ManifestValidation(
                type=ManifestValidationType.INVALID_SPONSOR_URL,
                field="sponsor.url",
                message=(
                    f"The protocol '{parts.scheme}' is not allowed. "
                    f"Use one of: {', '.join(ALLOWED_SPONSOR_PROTOCOLS)}"
                ),
            )
        ]
    return []


def validate_project_manifest(manifest: Mapping[str, Any]) -> Optional[list[ManifestValidation]]:
    """Validate an extension manifest.

    Args:
        manifest: Extension manifest (package.json contents)

    Returns:
        None when the manifest is valid, otherwise every problem found
    """
    errors: list[ManifestValidation] = []

    for field in ("name", "version", "publisher", "engines"):
        if manifest.get(field) is None:
            errors.append(_missing(field))

    engines = manifest.get("engines")
    if not isinstance(engines, Mapping):
        engines = {}
    if engines.get("vscode") is None:
        errors.append(_missing("engines.vscode"))

    engine_version = str(engines.get("vscode") or "")
    if not VSCODE_ENGINE_COMPATIBILITY_REGEX.match(engine_version):
        errors.append(
            ManifestValidation(
                type=ManifestValidationType.INVALID_VALUE,
                field="engines.vscode",
                message=(
                    "The `engines.vscode` field must be a valid semver version range, "
                    "or 'x' for any version."
                ),
            )
        )

    for field in ("name", "publisher"):
        if not EXTENSION_NAME_REGEX.match(str(manifest.get(field) or "")):
            errors.append(
                ManifestValidation(
                    type=ManifestValidationType.INVALID_VALUE,
                    field=field,
                    message=f"The `{field}` field should be an identifier and not its human-friendly name.",
                )
            )

    if not is_valid_semver(str(manifest.get("version") or "")):
        errors.append(
            ManifestValidation(
                type=ManifestValidationType.INVALID_VALUE,
                field="version",
                message="The `version` field must be a valid semver version.",
            )
        )

    pricing = manifest.get("pricing")
    if pricing and pricing not in EXTENSION_PRICING:
        errors.append(
            ManifestValidation(
                type=ManifestValidationType.INVALID_PRICING,
                value=str(pricing),
                message="The `pricing` field must be either 'Free' or 'Trial'.",
            )
        )

    errors.extend(_validate_activation(manifest, engine_version))

    dev_dependencies = manifest.get("devDependencies")
    if isinstance(dev_dependencies, Mapping) and dev_dependencies.get("@types/vscode") is not None:
        try:
            validate_vscode_types_compatibility(engine_version, str(dev_dependencies["@types/vscode"]))
        except TypesCompatibilityError:
            errors.append(
                ManifestValidation(
                    type=ManifestValidationType.VSCODE_TYPES_INCOMPATIBILITY,
                    message=(
                        "@types/vscode version is either higher than the specified "
                        "engine version or invalid"
                    ),
                )
            )

    icon = manifest.get("icon")
    if isinstance(icon, str) and icon.lower().endswith(".svg"):
        errors.append(
            ManifestValidation(
                type=ManifestValidationType.INVALID_ICON,
                field="icon",
                message="SVG icons are not supported. Use PNG icons instead.",
            )
        )

    errors.extend(_validate_badges(manifest.get("badges")))

    dependencies = manifest.get("dependencies")
    if isinstance(dependencies, Mapping) and dependencies.get("vscode") is not None:
        errors.append(
            ManifestValidation(
                type=ManifestValidationType.DEPENDS_ON_VSCODE_IN_DEPENDENCIES,
                field="dependencies.vscode",
                message=(
                    "You should not depend on 'vscode' in your 'dependencies'. "
                    "Did you mean to add it to 'devDependencies'?"
                ),
            )
        )

    extension_kind = manifest.get("extensionKind")
    if extension_kind is not None:
        kinds = extension_kind if isinstance(extension_kind, list) else [extension_kind]
        for kind in kinds:
            if kind not in VALID_EXTENSION_KINDS:
                errors.append(
                    ManifestValidation(
                        type=ManifestValidationType.INVALID_EXTENSION_KIND,
                        field="extensionKind",
                        message=(
                            f"Invalid extension kind '{kind}'. "
                            f"Expected one of: {', '.join(VALID_EXTENSION_KINDS)}"
                        ),
                    )
                )

    errors.extend(_validate_sponsor(manifest.get("sponsor")))

    return errors or None
