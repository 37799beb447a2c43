import os
import stat
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

from core.archive import ArchiveArtifact, ArchiveManager


class TestArchive(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.console = MagicMock()

        self.app = self.root / "build" / "Runner.app"
        (self.app / "Frameworks").mkdir(parents=True)
        (self.app / "Info.plist").write_text("plist")
        (self.app / "Frameworks" / "Flutter").write_text("binary")

    def tearDown(self):
        self._tmp.cleanup()

    def test_zip_keeps_root_directory(self):
        target = self.root / "deploy" / "Runner.app.zip"
        manager = ArchiveManager(self.console)

        result = manager.create_archive(
            artifact=ArchiveArtifact(source_dir=self.app, include_root=True),
            target_path=target,
        )

        self.assertEqual(result, target)
        with zipfile.ZipFile(target) as archive:
            names = sorted(archive.namelist())
        self.assertEqual(
            names,
            [
                "Runner.app/",
                "Runner.app/Frameworks/",
                "Runner.app/Frameworks/Flutter",
                "Runner.app/Info.plist",
            ],
        )
        self.assertFalse(any(p.name.endswith(".partial") for p in target.parent.iterdir()))

    def test_empty_directories_are_kept(self):
        archive_dir = self.root / "Runner.xcarchive"
        (archive_dir / "dSYMs").mkdir(parents=True)
        (archive_dir / "Products" / "Applications").mkdir(parents=True)
        (archive_dir / "Info.plist").write_text("plist")
        target = self.root / "Runner.xcarchive.zip"
        manager = ArchiveManager(self.console)

        manager.create_archive(
            artifact=ArchiveArtifact(source_dir=archive_dir, include_root=True),
            target_path=target,
        )

        with zipfile.ZipFile(target) as archive:
            names = archive.namelist()
            self.assertTrue(archive.getinfo("Runner.xcarchive/dSYMs/").is_dir())
        self.assertIn("Runner.xcarchive/", names)
        self.assertIn("Runner.xcarchive/Products/", names)
        self.assertIn("Runner.xcarchive/Products/Applications/", names)

        dest = self.root / "out"
        manager.extract_archive(archive_path=target, destination_dir=dest)
        self.assertTrue((dest / "Runner.xcarchive" / "dSYMs").is_dir())

    def test_empty_source_keeps_root_entry(self):
        empty = self.root / "Empty.app"
        empty.mkdir()
        target = self.root / "Empty.app.zip"
        ArchiveManager(self.console).create_archive(
            artifact=ArchiveArtifact(source_dir=empty, include_root=True),
            target_path=target,
        )
        with zipfile.ZipFile(target) as archive:
            self.assertEqual(archive.namelist(), ["Empty.app/"])

    def test_zip_contents_only(self):
        target = self.root / "contents.zip"
        ArchiveManager(self.console).create_archive(
            artifact=ArchiveArtifact(source_dir=self.app),
            target_path=target,
        )
        with zipfile.ZipFile(target) as archive:
            self.assertIn("Info.plist", archive.namelist())

    def test_symlinks_are_stored_as_links(self):
        os.symlink("Info.plist", self.app / "Link.plist")
        os.symlink("Frameworks", self.app / "LinkedFrameworks")
        target = self.root / "links.zip"

        ArchiveManager(self.console).create_archive(
            artifact=ArchiveArtifact(source_dir=self.app, include_root=True),
            target_path=target,
        )

        with zipfile.ZipFile(target) as archive:
            names = archive.namelist()
            link = archive.getinfo("Runner.app/Link.plist")
            self.assertTrue(stat.S_ISLNK(link.external_attr >> 16))
            self.assertEqual(archive.read(link), b"Info.plist")
            self.assertIn("Runner.app/LinkedFrameworks", names)
            self.assertNotIn("Runner.app/LinkedFrameworks/Flutter", names)

    def test_overwrites_existing_target(self):
        target = self.root / "Runner.app.zip"
        target.write_text("stale")
        ArchiveManager(self.console).create_archive(
            artifact=ArchiveArtifact(source_dir=self.app, include_root=True),
            target_path=target,
        )
        self.assertTrue(zipfile.is_zipfile(target))

    def test_refuses_overwrite_when_disabled(self):
        target = self.root / "Runner.app.zip"
        target.write_text("stale")
        with self.assertRaises(FileExistsError):
            ArchiveManager(self.console).create_archive(
                artifact=ArchiveArtifact(source_dir=self.app),
                target_path=target,
                overwrite=False,
            )

    def test_missing_source_raises(self):
        with self.assertRaises(FileNotFoundError):
            ArchiveManager(self.console).create_archive(
                artifact=ArchiveArtifact(source_dir=self.root / "missing.app"),
                target_path=self.root / "missing.zip",
            )

    def test_unknown_suffix_requires_hint(self):
        with self.assertRaises(ValueError):
            ArchiveManager(self.console).create_archive(
                artifact=ArchiveArtifact(source_dir=self.app),
                target_path=self.root / "Runner.app.bin",
            )

    def test_extract_round_trip(self):
        target = self.root / "Runner.app.zip"
        manager = ArchiveManager(self.console)
        manager.create_archive(
            artifact=ArchiveArtifact(source_dir=self.app, include_root=True),
            target_path=target,
        )
        dest = self.root / "out"
        manager.extract_archive(archive_path=target, destination_dir=dest)
        self.assertEqual((dest / "Runner.app" / "Info.plist").read_text(), "plist")


if __name__ == "__main__":
    unittest.main()
