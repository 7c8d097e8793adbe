"""Package descriptor loading."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from debpack.errors import ValidationError

logger = logging.getLogger(__name__)

# Relation kinds in the order they appear in the control file
RELATION_FIELDS = {
    "depends": "Depends",
    "recommends": "Recommends",
    "suggests": "Suggests",
    "enhances": "Enhances",
    "pre-depends": "Pre-Depends",
    "breaks": "Breaks",
    "conflicts": "Conflicts",
}

# Maintainer scripts, keyed by their name inside control.tar.gz
SCRIPT_NAMES = ("preinst", "postinst", "prerm", "postrm", "config")

DEFAULT_OUTPUT_TEMPLATE = "$package-$version.deb"

# Descriptor fields keyed by their spelling with case, "_" and "-" removed,
# so "postInst", "post_inst" and "postinst" all load as "postinst"
DESCRIPTOR_FIELDS = {
    name.replace("_", ""): name
    for name in (
        "package",
        "version",
        "architecture",
        "maintainer",
        "description",
        "homepage",
        "section",
        "priority",
        "essential",
        "dependencies",
        *SCRIPT_NAMES,
        "conffiles",
        "shlibs",
        "files",
        "output",
        "pre_build",
        "post_build",
    )
}
DESCRIPTOR_FIELDS["datafiles"] = "files"


@dataclass
class PackageDescriptor:
    """Declarative description of a binary package.

    Attributes:
        package: Debian package name
        version: Package version, MAJOR.MINOR.PATCH
        architecture: Target architecture (e.g., "amd64", "all")
        maintainer: Package maintainer in "Name <email>" format
        description: Synopsis line, optionally followed by extended lines
        homepage: Package homepage URL
        section: Debian section (e.g., "utils", "misc")
        priority: Debian priority; unknown values are left out of the control file
        essential: "yes" marks the package essential
        relations: Relation kind (e.g., "depends") to list of relation strings
        scripts: Maintainer script name (e.g., "postinst") to source path
        conffiles: Lines of the conffiles listing
        shlibs: Lines of the shlibs listing
        files: Install destination to local source path
        output: Output path template
        pre_build: Shell command run before the build
        post_build: Shell command run after the package is written
    """

    package: str
    version: str
    architecture: str
    maintainer: str
    description: str
    homepage: str = ""
    section: str = ""
    priority: str = ""
    essential: str = ""
    relations: dict[str, list[str]] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    conffiles: list[str] = field(default_factory=list)
    shlibs: list[str] = field(default_factory=list)
    files: dict[str, str] = field(default_factory=dict)
    output: str = ""
    pre_build: str = ""
    post_build: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageDescriptor":
        """Create a descriptor from a parsed configuration mapping.

        Args:
            data: Mapping as loaded from YAML or JSON

        Returns:
            PackageDescriptor with every value normalised to text

        Raises:
            ValidationError: If the mapping has the wrong shape or an unknown field
        """
        if not isinstance(data, dict):
            raise ValidationError("Package descriptor must be a mapping")
        data = _normalise_keys(data)

        scripts = {}
        for name in SCRIPT_NAMES:
            source = _as_text(data.get(name))
            if source.strip():
                scripts[name] = source

        return cls(
            package=_as_text(data.get("package")),
            version=_as_text(data.get("version")),
            architecture=_as_text(data.get("architecture")),
            maintainer=_as_text(data.get("maintainer")),
            description=_as_text(data.get("description")),
            homepage=_as_text(data.get("homepage")),
            section=_as_text(data.get("section")),
            priority=_as_text(data.get("priority")),
            essential=_as_text(data.get("essential")),
            relations=_parse_relations(data.get("dependencies")),
            scripts=scripts,
            conffiles=_as_text_list(data.get("conffiles"), "conffiles"),
            shlibs=_as_text_list(data.get("shlibs"), "shlibs"),
            files=_parse_files(data.get("files")),
            output=_as_text(data.get("output")),
            pre_build=_as_text(data.get("pre_build")),
            post_build=_as_text(data.get("post_build")),
        )

    @classmethod
    def from_yaml(cls, yaml_path: Path | str) -> "PackageDescriptor":
        """Load a descriptor from a YAML (or JSON) file.

        Args:
            yaml_path: Path to the descriptor file

        Returns:
            PackageDescriptor populated from the file

        Raises:
            ValidationError: If the file is missing or cannot be parsed
        """
        logger.info(f"Loading package descriptor from {yaml_path}")

        try:
            with open(yaml_path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ValidationError(f"Cannot read descriptor {yaml_path}: {e.strerror or e}") from e
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid descriptor {yaml_path}: {e}") from e

        return cls.from_dict(data)


def _normalise_keys(data: dict[str, Any]) -> dict[str, Any]:
    normalised = {}
    for key, value in data.items():
        lookup = str(key).replace("_", "").replace("-", "").lower()
        name = DESCRIPTOR_FIELDS.get(lookup)
        if name is None:
            raise ValidationError(f"Unknown descriptor field: {key}")
        if name in normalised:
            raise ValidationError(f"Descriptor field given twice: {key}")
        normalised[name] = value
    return normalised


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    # YAML 1.1 reads yes/no as booleans
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _as_text_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValidationError(f"{name} must be a list of strings")
    return [_as_text(item) for item in value]


def _relation_key(kind: str) -> str:
    """Normalise "preDepends" / "pre_depends" / "Pre-Depends" to "pre-depends"."""
    key = kind.strip().replace("_", "-").lower()
    if key == "predepends":
        return "pre-depends"
    return key


def _parse_relations(value: Any) -> dict[str, list[str]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("dependencies must be a mapping of relation kind to list")

    relations = {}
    for kind, entries in value.items():
        key = _relation_key(str(kind))
        if key not in RELATION_FIELDS:
            raise ValidationError(f"Unknown dependency relation: {kind}")
        relations[key] = _as_text_list(entries, str(kind))
    return relations


def _parse_files(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("files must be a mapping of destination to source")
    return {_as_text(dest): _as_text(src) for dest, src in value.items()}
