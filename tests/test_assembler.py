"""End-to-end tests for package assembly."""

import hashlib
from unittest.mock import Mock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import read_ar_members, read_tar_gz
from debpack.assembler import Assembler
from debpack.config_manager import PackageDescriptor
from debpack.errors import HookError, ReadError, ValidationError, WriteError
from debpack.hooks import HookRunner
from debpack.writer import OutputWriter


@pytest.fixture
def hello_file(tmp_path):
    source = tmp_path / "a.txt"
    source.write_bytes(b"hello")
    return source


def _control_text(package: bytes) -> str:
    members = dict(read_ar_members(package))
    return dict(read_tar_gz(members["control.tar.gz"]))["control"].decode()


class TestBuild:
    def test_member_order(self, make_descriptor, hello_file, build_time):
        assembler = Assembler(make_descriptor(files={"/a.txt": str(hello_file)}), build_time=build_time)

        members = read_ar_members(assembler.build())

        assert [name for name, _ in members] == ["debian-binary", "control.tar.gz", "data.tar.gz"]
        assert members[0][1] == b"2.0\n"

    def test_data_roundtrip(self, make_descriptor, hello_file, build_time):
        package = Assembler(make_descriptor(files={"/a.txt": str(hello_file)}), build_time=build_time).build()

        data = dict(read_ar_members(package))["data.tar.gz"]
        assert read_tar_gz(data) == [("/a.txt", b"hello")]

    def test_control_payload(self, make_descriptor, hello_file, build_time):
        package = Assembler(
            make_descriptor(files={"/a.txt": str(hello_file)}, priority="urgent"),
            build_time=build_time,
        ).build()

        control = dict(read_tar_gz(dict(read_ar_members(package))["control.tar.gz"]))
        assert control["md5sums"] == f"{hashlib.md5(b'hello').hexdigest()} a.txt\n".encode()
        assert "Installed-Size: 1\n" in control["control"].decode()
        assert "Priority" not in control["control"].decode()
        assert "Date: Mon, 15 Jan 2024 12:30:00 UTC\n" in control["control"].decode()

    def test_ar_headers_use_build_time(self, make_descriptor, hello_file, build_time):
        package = Assembler(make_descriptor(files={"/a.txt": str(hello_file)}), build_time=build_time).build()
        assert package[8 + 16 : 8 + 28].strip() == str(int(build_time.timestamp())).encode()

    def test_reproducible(self, make_descriptor, hello_file, build_time):
        descriptor = make_descriptor(files={"/a.txt": str(hello_file)})
        assert Assembler(descriptor, build_time=build_time).build() == Assembler(
            descriptor, build_time=build_time
        ).build()

    def test_empty_manifest_installed_size_zero(self, make_descriptor, build_time):
        package = Assembler(make_descriptor(), build_time=build_time).build()
        assert "Installed-Size: 0\n" in _control_text(package)

    def test_missing_package_name_fails(self, make_descriptor, hello_file):
        assembler = Assembler(make_descriptor(package="", files={"/a.txt": str(hello_file)}))
        with pytest.raises(ValidationError):
            assembler.build()

    def test_data_checked_before_control(self, make_descriptor, tmp_path):
        # Both are broken; the data error surfaces first
        assembler = Assembler(make_descriptor(version="1.2", files={"/x": str(tmp_path / "x")}))
        with pytest.raises(ReadError):
            assembler.build()
        assert assembler.control.state == "unvalidated"

    def test_error_is_sticky(self, make_descriptor, tmp_path):
        assembler = Assembler(make_descriptor(files={"/x": str(tmp_path / "x")}))
        with pytest.raises(ReadError) as first:
            assembler.build()

        (tmp_path / "x").write_bytes(b"late")
        with pytest.raises(ReadError) as second:
            assembler.build()
        with pytest.raises(ReadError):
            assembler.output_path()

        assert second.value is first.value


    def test_build_is_assembled_once(self, make_descriptor, hello_file, build_time):
        assembler = Assembler(make_descriptor(files={"/a.txt": str(hello_file)}), build_time=build_time)

        first = assembler.build()

        assert assembler.build() is first
        assert assembler.error is None


class TestOutputPath:
    def test_default(self, make_descriptor):
        assert Assembler(make_descriptor()).output_path() == "hello-1.2.3.deb"

    def test_override_wins(self, make_descriptor):
        assembler = Assembler(make_descriptor(output="dist/$package.deb"))
        assert assembler.output_path("out/custom.deb") == "out/custom.deb"

    def test_descriptor_template(self, make_descriptor):
        assembler = Assembler(make_descriptor(output="dist/${package}_${version}_$architecture.deb"))
        assert assembler.output_path() == "dist/hello_1.2.3_amd64.deb"

    def test_unknown_placeholder(self, make_descriptor):
        with pytest.raises(ValidationError):
            Assembler(make_descriptor(output="$name.deb")).output_path()


class TestMake:
    def _assembler(self, descriptor, hook_runner=None, writer=None, build_time=None):
        return Assembler(
            descriptor,
            hook_runner=hook_runner or Mock(spec=HookRunner),
            writer=writer or Mock(spec=OutputWriter),
            build_time=build_time,
        )

    def test_protocol_order(self, make_descriptor, hello_file, build_time):
        calls = Mock()
        descriptor = make_descriptor(
            files={"/a.txt": str(hello_file)}, pre_build="make", post_build="make clean"
        )
        assembler = self._assembler(descriptor, calls.hooks, calls.writer, build_time)

        path = assembler.make()

        assert path == "hello-1.2.3.deb"
        assert [c[0] for c in calls.mock_calls] == ["hooks.run", "writer.write", "hooks.run"]
        assert calls.mock_calls[0].args == ("make",)
        assert calls.mock_calls[2].args == ("make clean",)
        written_path, written = calls.writer.write.call_args.args
        assert written_path == "hello-1.2.3.deb"
        assert written == Assembler(descriptor, build_time=build_time).build()

    def test_make_after_build_writes_same_package(self, make_descriptor, hello_file, build_time):
        writer = Mock(spec=OutputWriter)
        assembler = self._assembler(
            make_descriptor(files={"/a.txt": str(hello_file)}), writer=writer, build_time=build_time
        )
        package = assembler.build()

        assert assembler.make() == "hello-1.2.3.deb"
        writer.write.assert_called_once_with("hello-1.2.3.deb", package)

    def test_pre_hook_failure_aborts(self, make_descriptor, hello_file):
        hooks = Mock(spec=HookRunner)
        hooks.run.side_effect = HookError("pre failed")
        writer = Mock(spec=OutputWriter)
        assembler = self._assembler(
            make_descriptor(files={"/a.txt": str(hello_file)}, pre_build="false"), hooks, writer
        )

        with pytest.raises(HookError):
            assembler.make()

        writer.write.assert_not_called()
        assert hooks.run.call_count == 1

    def test_validation_failure_writes_nothing(self, make_descriptor):
        writer = Mock(spec=OutputWriter)
        assembler = self._assembler(make_descriptor(maintainer=" "), writer=writer)

        with pytest.raises(ValidationError):
            assembler.make()

        writer.write.assert_not_called()

    def test_write_failure_skips_post_hook(self, make_descriptor, hello_file):
        hooks = Mock(spec=HookRunner)
        writer = Mock(spec=OutputWriter)
        writer.write.side_effect = WriteError("disk full")
        assembler = self._assembler(
            make_descriptor(files={"/a.txt": str(hello_file)}, post_build="echo done"), hooks, writer
        )

        with pytest.raises(WriteError):
            assembler.make()

        assert hooks.run.call_count == 1

    def test_post_hook_failure_keeps_file(self, make_descriptor, hello_file, tmp_path):
        hooks = Mock(spec=HookRunner)
        hooks.run.side_effect = [None, HookError("post failed")]
        output = tmp_path / "out" / "hello.deb"
        assembler = Assembler(
            make_descriptor(files={"/a.txt": str(hello_file)}, post_build="exit 1"),
            hook_runner=hooks,
        )

        with pytest.raises(HookError):
            assembler.make(str(output))

        assert output.exists()
        assert output.read_bytes().startswith(b"!<arch>\n")


@settings(max_examples=20, deadline=None)
@given(
    contents=st.lists(st.binary(min_size=1, max_size=5000), min_size=1, max_size=5),
    version=st.from_regex(r"\A[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\Z"),
)
def test_package_structure_property(tmp_path_factory, contents, version):
    """Property test: any valid descriptor yields a three-member package whose md5sums and Installed-Size match its files."""
    root = tmp_path_factory.mktemp("pkg")
    files = {}
    for i, content in enumerate(contents):
        (root / f"f{i}").write_bytes(content)
        files[f"/opt/pkg/f{i}"] = str(root / f"f{i}")

    descriptor = PackageDescriptor(
        package="prop",
        version=version,
        architecture="all",
        maintainer="Jane Doe <jane@example.com>",
        description="Property package",
        files=files,
    )
    assembler = Assembler(descriptor)
    members = read_ar_members(assembler.build())

    assert [name for name, _ in members] == ["debian-binary", "control.tar.gz", "data.tar.gz"]
    assert members[0][1] == b"2.0\n"

    control = dict(read_tar_gz(members[1][1]))
    md5_lines = control["md5sums"].decode().splitlines()
    assert md5_lines == [
        f"{hashlib.md5(content).hexdigest()} opt/pkg/f{i}" for i, content in enumerate(contents)
    ]

    total = sum(len(content) for content in contents)
    assert f"Installed-Size: {-(-total // 1024)}\n" in control["control"].decode()
    assert read_tar_gz(members[2][1]) == [
        (f"/opt/pkg/f{i}", content) for i, content in enumerate(contents)
    ]
