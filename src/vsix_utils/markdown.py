# SPDX-License-Identifier: MIT
"""README link rewriting.

Relative links in a README resolve against the repository on the
Marketplace page, so they are rewritten to absolute URLs before packaging.
Images point at raw file URLs, everything else at the browsable blob view.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "HEAD"

# owner/repo shorthand means GitHub
SHORTHAND_PATTERN = re.compile(r"^(?:github:)?(?P<repo>[\w.-]+/[\w.-]+)$")
ABSOLUTE_URL_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)
FENCE_PATTERN = re.compile(r"^ {0,3}(```|~~~)")

_LINK_TEXT = r"(?:[^\[\]\\]|\\.|!\[[^\]]*\]\([^)]*\))*"
_DESTINATION = r"(?P<url><[^>\n]*>|[^)\s]+)(?P<title>\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?"

INLINE_PATTERN = re.compile(
    r"(?P<code>`+[^`\n]*`+)"
    rf"|(?P<bang>!?)\[(?P<text>{_LINK_TEXT})\]\(\s*{_DESTINATION}\s*\)"
    r"|(?P<img><img\b[^>]*?\bsrc\s*=\s*)(?P<quote>[\"'])(?P<src>[^\"']*)(?P=quote)",
    re.IGNORECASE,
)
REFERENCE_PATTERN = re.compile(
    r"^(?P<prefix> {0,3}\[(?!\^)[^\]]+\]:\s*)(?P<url><[^>]*>|\S+)",
    re.MULTILINE,
)


class MarkdownError(Exception):
    """Raised when relative links cannot be rewritten."""

    pass


@dataclass(frozen=True)
class InferredBaseUrls:
    """Base URLs derived from the extension's repository.

    Attributes:
        content_url: Prefix for relative links
        images_url: Prefix for relative images
    """

    content_url: str
    images_url: str


def repository_url(manifest: Mapping[str, Any]) -> Optional[str]:
    """Return the repository URL declared in the manifest, if any."""
    repository = manifest.get("repository")
    if isinstance(repository, str):
        return repository or None
    if isinstance(repository, Mapping) and isinstance(repository.get("url"), str):
        return repository["url"] or None
    return None


def infer_base_urls(
    manifest: Mapping[str, Any],
    branch: Optional[str] = DEFAULT_BRANCH,
) -> Optional[InferredBaseUrls]:
    """Infer link prefixes from the manifest's repository field.

    GitHub, GitLab and Gitea repositories are recognized, in https or
    ``git@host:owner/repo`` form.

    Args:
        manifest: Extension manifest
        branch: Branch (or ref) the links should point at

    Returns:
        InferredBaseUrls, or None when the repository is missing or unknown
    """
    repository = repository_url(manifest)
    if not repository:
        return None

    shorthand = SHORTHAND_PATTERN.match(repository)
    if shorthand:
        repository = f"https://github.com/{shorthand.group('repo')}"
    elif repository.startswith("git@"):
        repository = repository.replace(":", "/", 1).replace("git@", "https://", 1)

    parts = urlsplit(repository)
    if not parts.scheme or not parts.hostname:
        return None

    segments = [segment for segment in parts.path.split("/") if segment]
    owner_with_repo = "/".join(segments[:2])
    if owner_with_repo.endswith(".git"):
        owner_with_repo = owner_with_repo[: -len(".git")]

    branch_name = branch or DEFAULT_BRANCH
    host = parts.hostname.lower()

    if host == "github.com":
        return InferredBaseUrls(
            content_url=f"https://github.com/{owner_with_repo}/blob/{branch_name}",
            images_url=f"https://github.com/{owner_with_repo}/raw/{branch_name}",
        )
    if host == "gitlab.com":
        return InferredBaseUrls(
            content_url=f"https://gitlab.com/{owner_with_repo}/-/blob/{branch_name}",
            images_url=f"https://gitlab.com/{owner_with_repo}/-/raw/{branch_name}",
        )
    if host == "gitea.com":
        return InferredBaseUrls(
            content_url=f"https://gitea.com/{owner_with_repo}/src/branch/{branch_name}",
            images_url=f"https://gitea.com/{owner_with_repo}/raw/branch/{branch_name}",
        )

    logger.debug("Unrecognized repository host: %s", host)
    return None


def is_relative_link(url: str) -> bool:
    """Return True for links that resolve against the current document."""
    if not url or url.startswith("#") or url.startswith("//"):
        return False
    return ABSOLUTE_URL_PATTERN.match(url) is None


def _join(base: str, url: str) -> str:
    while url.startswith("./"):
        url = url[2:]
    return f"{base.rstrip('/')}/{url.lstrip('/')}"


class _Rewriter:
    def __init__(self, content_url: Optional[str], images_url: Optional[str]):
        self.content_url = content_url
        self.images_url = images_url

    def _join(self, base: Optional[str], url: str) -> str:
        if base is None:
            raise MarkdownError(
                f"Couldn't detect the repository where this extension is published. "
                f"The link '{url}' will be broken in the Marketplace."
            )
        return _join(base, url)

    def _rewrite_url(self, url: str, base: Optional[str]) -> str:
        if url.startswith("<") and url.endswith(">"):
            inner = url[1:-1]
            return f"<{self._join(base, inner)}>" if is_relative_link(inner) else url
        return self._join(base, url) if is_relative_link(url) else url

    def _inline(self, match: re.Match) -> str:
        if match.group("code"):
            return match.group(0)

        if match.group("img"):
            src = match.group("src")
            if is_relative_link(src):
                src = self._join(self.images_url, src)
            quote = match.group("quote")
            return f"{match.group('img')}{quote}{src}{quote}"

        is_image = match.group("bang") == "!"
        text = match.group("text")
        if not is_image:
            # badges are images nested inside links
            text = INLINE_PATTERN.sub(self._inline, text)
        base = self.images_url if is_image else self.content_url
        url = self._rewrite_url(match.group("url"), base)
        return f"{match.group('bang')}[{text}]({url}{match.group('title') or ''})"

    def _reference(self, match: re.Match) -> str:
        return match.group("prefix") + self._rewrite_url(match.group("url"), self.content_url)

    def rewrite(self, text: str) -> str:
        text = REFERENCE_PATTERN.sub(self._reference, text)
        return INLINE_PATTERN.sub(self._inline, text)


def _rewrite_outside_fences(content: str, rewriter: _Rewriter) -> str:
    output: list[str] = []
    pending: list[str] = []
    fence: Optional[str] = None

    for line in content.splitlines(keepends=True):
        match = FENCE_PATTERN.match(line)
        if fence is None:
            if match:
                output.append(rewriter.rewrite("".join(pending)))
                pending = []
                fence = match.group(1)
                output.append(line)
            else:
                pending.append(line)
        else:
            output.append(line)
            if match and match.group(1) == fence:
                fence = None

    output.append(rewriter.rewrite("".join(pending)))
    return "".join(output)


def transform_markdown(
    manifest: Mapping[str, Any],
    content: str,
    *,
    base_content_url: Optional[str] = None,
    base_images_url: Optional[str] = None,
    rewrite: bool = True,
    branch: Optional[str] = DEFAULT_BRANCH,
) -> str:
    """Rewrite relative links and images in markdown to absolute URLs.

    Explicit base URLs take precedence over those inferred from the
    repository. Fenced code blocks and inline code are left untouched.

    Args:
        manifest: Extension manifest, used to infer base URLs
        content: Markdown source
        base_content_url: Prefix for relative links
        base_images_url: Prefix for relative images
        rewrite: When False, content is returned unchanged
        branch: Branch used for inferred URLs

    Returns:
        The rewritten markdown

    Raises:
        MarkdownError: If a relative link is found but no base URL is given and
            no repository can be detected
    """
    if not rewrite:
        return content

    if base_content_url is None or base_images_url is None:
        inferred = infer_base_urls(manifest, branch)
        if inferred is not None:
            base_content_url = base_content_url or inferred.content_url
            base_images_url = base_images_url or inferred.images_url

    return _rewrite_outside_fences(content, _Rewriter(base_content_url, base_images_url))
