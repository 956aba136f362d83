"""
Data structures describing a published release and the file trees derived from it.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_validator

from release_sync.exceptions import AssetNotFoundError


class AssetRef(BaseModel):
    """Download locator and byte size of one release asset."""

    model_config = ConfigDict(frozen=True)

    locator: str
    size_bytes: int = 0

    @field_validator("size_bytes")
    @classmethod
    def clamp_size(cls, v: int) -> int:
        # Negative sizes are treated as unknown, same as zero.
        return max(v, 0)


class ReleaseManifest(BaseModel):
    """The latest published release: its tag and its named assets."""

    model_config = ConfigDict(frozen=True)

    tag: str
    assets: dict[str, AssetRef] = Field(default_factory=dict)

    def asset(self, name: str) -> AssetRef:
        """Returns the asset with exactly this name."""
        try:
            return self.assets[name]
        except KeyError:
            raise AssetNotFoundError(
                f"Asset '{name}' not found in release '{self.tag}'."
            ) from None


class AssetPayload(BaseModel):
    """One entry of the ``assets`` array returned by the release endpoint."""

    name: str
    browser_download_url: str
    size: int = 0


class ReleasePayload(BaseModel):
    """The subset of the release endpoint's JSON body that is used."""

    tag_name: str
    assets: list[AssetPayload] = Field(default_factory=list)

    @field_validator("tag_name")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Release tag cannot be empty.")
        return v.strip()

    def to_manifest(self) -> ReleaseManifest:
        # First asset wins when a release lists the same name twice.
        assets: dict[str, AssetRef] = {}
        for asset in self.assets:
            assets.setdefault(
                asset.name,
                AssetRef(locator=asset.browser_download_url, size_bytes=asset.size),
            )
        return ReleaseManifest(tag=self.tag_name, assets=assets)


@dataclass(frozen=True)
class ExpectedTree:
    """
    File paths a correct installation must contain, as listed by the tree manifest.

    ``paths`` holds only file-like entries; ``total_entry_count`` counts every
    listed entry, directories included.
    """

    paths: frozenset[str] = field(default_factory=frozenset)
    total_entry_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.paths and self.total_entry_count == 0


@dataclass(frozen=True)
class ActualTree:
    """Visible files found under the installation root, relative and '/'-separated."""

    paths: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class TreeDiff:
    """Result of comparing an expected tree against the actual one."""

    missing: frozenset[str]
    unexpected: frozenset[str]
    expected_count: int
    actual_count: int

    @property
    def matches(self) -> bool:
        return (
            not self.missing
            and not self.unexpected
            and self.expected_count == self.actual_count
        )
