# SPDX-License-Identifier: MIT
"""extension.vsixmanifest generation and parsing.

The package manifest describes the extension to the Marketplace and to VS
Code: identity, gallery metadata, properties derived from package.json and
the list of assets inside the archive.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence
from xml.etree import ElementTree as ET

from .markdown import repository_url
from .models import AssetRole, ExtensionKind, ManifestAsset

VSIX_MANIFEST_PATH = "extension.vsixmanifest"
VSIX_NAMESPACE = "http://schemas.microsoft.com/developer/vsx-schema/2011"
VSIX_DESIGN_NAMESPACE = "http://schemas.microsoft.com/developer/vsx-schema-design/2011"
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"

ET.register_namespace("", VSIX_NAMESPACE)
ET.register_namespace("d", VSIX_DESIGN_NAMESPACE)

# Tags implied by contribution points
CONTRIBUTION_TAGS = {
    "themes": ["theme", "color-theme"],
    "iconThemes": ["icon-theme"],
    "productIconThemes": ["product-icon-theme"],
    "snippets": ["snippet"],
    "keybindings": ["keybindings"],
    "debuggers": ["debuggers"],
    "jsonValidation": ["json"],
    "notebooks": ["notebook"],
}


def _q(tag: str) -> str:
    return f"{{{VSIX_NAMESPACE}}}{tag}"


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


def _tags(manifest: Mapping[str, Any]) -> list[str]:
    tags = _as_list(manifest.get("keywords"))
    contributes = manifest.get("contributes")
    if isinstance(contributes, Mapping):
        for contribution, implied in CONTRIBUTION_TAGS.items():
            if contributes.get(contribution):
                tags.extend(implied)
        for language in contributes.get("languages") or []:
            if isinstance(language, Mapping) and language.get("id"):
                tags.append(f"__ext_{language['id']}")

    # keep first occurrence, case-insensitively
    seen: set[str] = set()
    unique: list[str] = []
    for tag in tags:
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            unique.append(tag)
    return unique


def _localized_languages(manifest: Mapping[str, Any]) -> list[str]:
    contributes = manifest.get("contributes")
    if not isinstance(contributes, Mapping):
        return []
    languages = []
    for localization in contributes.get("localizations") or []:
        if isinstance(localization, Mapping) and localization.get("languageId"):
            languages.append(str(localization["languageId"]))
    return languages


def _url_field(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping) and isinstance(value.get("url"), str):
        return value["url"] or None
    return None


def _properties(
    manifest: Mapping[str, Any],
    extension_kinds: Sequence[ExtensionKind],
    pre_release: bool,
) -> list[tuple[str, str]]:
    engines = manifest.get("engines") if isinstance(manifest.get("engines"), Mapping) else {}
    properties = [
        ("Microsoft.VisualStudio.Code.Engine", str(engines.get("vscode", ""))),
        (
            "Microsoft.VisualStudio.Code.ExtensionDependencies",
            ",".join(_as_list(manifest.get("extensionDependencies"))),
        ),
        ("Microsoft.VisualStudio.Code.ExtensionPack", ",".join(_as_list(manifest.get("extensionPack")))),
        ("Microsoft.VisualStudio.Code.ExtensionKind", ",".join(str(kind) for kind in extension_kinds)),
        ("Microsoft.VisualStudio.Code.LocalizedLanguages", ",".join(_localized_languages(manifest))),
    ]

    if pre_release:
        properties.append(("Microsoft.VisualStudio.Code.PreRelease", "true"))

    sponsor = _url_field(manifest.get("sponsor"))
    if sponsor:
        properties.append(("Microsoft.VisualStudio.Code.SponsorLink", sponsor))

    repository = repository_url(manifest)
    if repository:
        properties.append(("Microsoft.VisualStudio.Services.Links.Source", repository))
        properties.append(("Microsoft.VisualStudio.Services.Links.Getstarted", repository))
        if "github.com" in repository:
            properties.append(("Microsoft.VisualStudio.Services.Links.GitHub", repository))
        else:
            properties.append(("Microsoft.VisualStudio.Services.Links.Repository", repository))

    bugs = _url_field(manifest.get("bugs"))
    if bugs:
        properties.append(("Microsoft.VisualStudio.Services.Links.Support", bugs))

    homepage = _url_field(manifest.get("homepage"))
    if homepage:
        properties.append(("Microsoft.VisualStudio.Services.Links.Learn", homepage))

    banner = manifest.get("galleryBanner")
    if isinstance(banner, Mapping):
        if banner.get("color"):
            properties.append(("Microsoft.VisualStudio.Services.Branding.Color", str(banner["color"])))
        if banner.get("theme"):
            properties.append(("Microsoft.VisualStudio.Services.Branding.Theme", str(banner["theme"])))

    markdown = "false" if manifest.get("markdown") == "standard" else "true"
    properties.append(("Microsoft.VisualStudio.Services.GitHubFlavoredMarkdown", markdown))
    properties.append(
        ("Microsoft.VisualStudio.Services.Content.Pricing", str(manifest.get("pricing") or "Free"))
    )
    return properties


def create_vsix_manifest(
    manifest: Mapping[str, Any],
    assets: Iterable[ManifestAsset],
    *,
    pre_release: bool = False,
    extension_kinds: Optional[Sequence[ExtensionKind]] = None,
) -> str:
    """Render extension.vsixmanifest for an extension.

    Args:
        manifest: Extension manifest (package.json contents)
        assets: Located assets, in the order they should be listed
        pre_release: Mark the package as a pre-release
        extension_kinds: Classified extension kinds, defaults to workspace

    Returns:
        The XML document as a string
    """
    assets = list(assets)
    kinds = list(extension_kinds) if extension_kinds else [ExtensionKind.WORKSPACE]

    root = ET.Element(_q("PackageManifest"), attrib={"Version": "2.0.0"})
    metadata = ET.SubElement(root, _q("Metadata"))

    name = str(manifest.get("name", ""))
    ET.SubElement(
        metadata,
        _q("Identity"),
        attrib={
            "Language": "en-US",
            "Id": name,
            "Version": str(manifest.get("version", "")),
            "Publisher": str(manifest.get("publisher", "")),
        },
    )
    ET.SubElement(metadata, _q("DisplayName")).text = str(manifest.get("displayName") or name)
    description = ET.SubElement(metadata, _q("Description"), attrib={XML_SPACE: "preserve"})
    description.text = str(manifest.get("description") or "")
    ET.SubElement(metadata, _q("Tags")).text = ",".join(_tags(manifest))
    ET.SubElement(metadata, _q("Categories")).text = ",".join(_as_list(manifest.get("categories")))

    flags = ["Public"]
    if manifest.get("preview"):
        flags.append("Preview")
    ET.SubElement(metadata, _q("GalleryFlags")).text = " ".join(flags)

    badges = manifest.get("badges")
    if isinstance(badges, list) and badges:
        badges_el = ET.SubElement(metadata, _q("Badges"))
        for badge in badges:
            if not isinstance(badge, Mapping):
                continue
            ET.SubElement(
                badges_el,
                _q("Badge"),
                attrib={
                    "Link": str(badge.get("href", "")),
                    "ImgUri": str(badge.get("url", "")),
                    "Description": str(badge.get("description", "")),
                },
            )

    properties_el = ET.SubElement(metadata, _q("Properties"))
    for property_id, value in _properties(manifest, kinds, pre_release):
        ET.SubElement(properties_el, _q("Property"), attrib={"Id": property_id, "Value": value})

    for asset in assets:
        if asset.role is AssetRole.LICENSE:
            ET.SubElement(metadata, _q("License")).text = asset.path
        elif asset.role is AssetRole.ICON:
            ET.SubElement(metadata, _q("Icon")).text = asset.path

    installation = ET.SubElement(root, _q("Installation"))
    ET.SubElement(installation, _q("InstallationTarget"), attrib={"Id": "Microsoft.VisualStudio.Code"})
    ET.SubElement(root, _q("Dependencies"))

    assets_el = ET.SubElement(root, _q("Assets"))
    for asset in assets:
        ET.SubElement(
            assets_el,
            _q("Asset"),
            attrib={"Type": asset.asset_type, "Path": asset.path, "Addressable": "true"},
        )

    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _element_to_dict(element: ET.Element) -> Any:
    result: dict[str, Any] = {f"@{_local_name(key)}": value for key, value in element.attrib.items()}

    for child in element:
        key = _local_name(child.tag)
        value = _element_to_dict(child)
        if key in result:
            if not isinstance(result[key], list):
                result[key] = [result[key]]
            result[key].append(value)
        else:
            result[key] = value

    text = (element.text or "").strip()
    if not result:
        return text
    if text:
        result["#text"] = text
    return result


def parse_vsix_manifest(xml: str | bytes) -> dict[str, Any]:
    """Parse extension.vsixmanifest into nested dictionaries.

    Namespaces are dropped from tag names, attributes are prefixed with
    ``@`` and repeated elements become lists. Elements without attributes or
    children collapse to their text.

    Raises:
        ET.ParseError: If the document is not well-formed XML
    """
    root = ET.fromstring(xml)
    return {_local_name(root.tag): _element_to_dict(root)}
