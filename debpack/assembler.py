"""Build orchestration: validate, build both payloads, assemble, write."""

import logging
from datetime import datetime
from string import Template

from debpack.archives import build_debian_archive
from debpack.config import build_timestamp
from debpack.config_manager import DEFAULT_OUTPUT_TEMPLATE, PackageDescriptor
from debpack.control import ControlBuilder
from debpack.data import DataBuilder
from debpack.errors import DebpackError, ValidationError, sticky
from debpack.filesystem import FilesystemReader
from debpack.hooks import HookRunner
from debpack.writer import OutputWriter

logger = logging.getLogger(__name__)


class Assembler:
    """Turns a package descriptor into a Debian binary package.

    One Assembler drives one build: the package bytes are assembled once
    and returned again by later calls. After the first failure every
    further call raises the same error.
    """

    def __init__(
        self,
        descriptor: PackageDescriptor,
        reader: FilesystemReader | None = None,
        hook_runner: HookRunner | None = None,
        writer: OutputWriter | None = None,
        build_time: datetime | None = None,
    ):
        """Initialize the assembler.

        Args:
            descriptor: Package descriptor to build
            reader: Filesystem reader shared by both builders
            hook_runner: Runs the pre- and post-build hooks
            writer: Persists the finished package
            build_time: Timestamp for the control Date field and ar headers
        """
        self.descriptor = descriptor
        self.build_time = build_time or build_timestamp()
        reader = reader or FilesystemReader()
        self.data = DataBuilder(descriptor.files, reader)
        self.control = ControlBuilder(descriptor, reader, self.build_time)
        self.hook_runner = hook_runner or HookRunner()
        self.writer = writer or OutputWriter()
        self.package: bytes | None = None
        self.error: DebpackError | None = None

    @sticky
    def build(self) -> bytes:
        """Validate the descriptor and assemble the package bytes.

        Returns:
            The .deb archive

        Raises:
            ValidationError: If mandatory metadata is missing or malformed
            ReadError: If a manifest or script source cannot be read
        """
        if self.package is not None:
            return self.package

        logger.info(
            f"Building {self.descriptor.package.strip()} {self.descriptor.version.strip()}"
        )

        # Installed-Size comes from the data files, so they are checked first
        self.data.validate()
        self.control.validate()

        data_payload = self.data.build()
        control_payload = self.control.build(self.data)

        package = build_debian_archive(
            control_payload, data_payload, mtime=int(self.build_time.timestamp())
        )
        logger.info(f"Assembled package ({len(package)} bytes)")
        self.package = package
        return package

    @sticky
    def output_path(self, override: str | None = None) -> str:
        """Resolve where the package is written.

        An explicit override wins, then the descriptor's output template,
        then "<package>-<version>.deb". Templates may use $package,
        $version and $architecture.

        Raises:
            ValidationError: If the template references an unknown placeholder
        """
        template = (override or "").strip() or self.descriptor.output.strip()
        template = template or DEFAULT_OUTPUT_TEMPLATE
        try:
            return Template(template).substitute(
                package=self.descriptor.package.strip(),
                version=self.descriptor.version.strip(),
                architecture=self.descriptor.architecture.strip(),
            )
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Invalid output template {template!r}: {e}") from e

    @sticky
    def make(self, override: str | None = None) -> str:
        """Run the full build: hooks, assembly and writing.

        A package already written is left in place if the post-build hook
        fails.

        Args:
            override: Explicit output path

        Returns:
            Path the package was written to

        Raises:
            HookError: If a hook fails
            WriteError: If the package cannot be written
        """
        self.hook_runner.run(self.descriptor.pre_build)
        package = self.build()
        path = self.output_path(override)
        self.writer.write(path, package)
        self.hook_runner.run(self.descriptor.post_build)

        logger.info(f"Package written to {path}")
        return path
