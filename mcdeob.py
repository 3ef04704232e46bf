import os
import re
import sys
import time
import traceback
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import requests
from tqdm import tqdm

from java_tools import Decompiler, RemapArgumentError, Remapper, build_decompile_args, build_remap_args

RED = '\033[91m'
BLUE = '\033[94m'
RESET = '\033[0m'

MANIFEST_LOCATION = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"
BUFFER_SIZE = 1024
DECOMPILE_DIR_NAME = "final-decompile"

EXIT_OK = 0
EXIT_REMAP_FAILURE = 1
EXIT_BAD_VERSION = 2


class ReleaseType(Enum):
    CLIENT = "client"
    SERVER = "server"


class VersionNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class Version:
    release_type: ReleaseType
    version: str
    jar_url: str
    mappings_url: str

    @property
    def jar_name(self):
        return f"minecraft_{self.release_type.value}_{self.version}.jar"

    @property
    def mappings_name(self):
        return f"mappings_{self.release_type.value}_{self.version}.txt"

    @property
    def remapped_name(self):
        return f"remapped_{self.release_type.value}_{self.version}.jar"


@dataclass(frozen=True)
class RemapFailure:
    """Returned by the remap stage when the remapper could not be set up."""
    error: Exception


class NullStatusSink:
    """Status sink for headless runs. A GUI overrides these to show progress."""

    def update_status_box(self, message):
        pass

    def update_button(self, label, color=None):
        pass


def sanity_check_version(version_str):
    release = r'^\d+\.\d+(\.\d+)?$'
    snapshot = r'^\d{2}w\d{2}[a-z]$'
    return bool(re.match(release, version_str) or re.match(snapshot, version_str))


def resolve_work_dir(platform=None):
    platform = platform or sys.platform
    if platform.startswith('darwin'):
        # The macOS app bundle can't write next to itself, use the home folder instead
        return Path("~", "McDeob").expanduser()
    return Path(".", "deobf-work")


def resolve_version(release_type, minecraft_version, manifest_url=MANIFEST_LOCATION):
    """
    Look up the jar and mappings URLs for a version in Mojang's version manifest.

    Mappings are only published from 1.14.4 onwards, older versions raise
    VersionNotFoundError just like unknown ones.
    """
    response = requests.get(manifest_url, timeout=10)
    response.raise_for_status()
    entry = next((v for v in response.json().get("versions", []) if v.get("id") == minecraft_version), None)
    if entry is None or not entry.get("url"):
        raise VersionNotFoundError(f"Version {minecraft_version} is not in the version manifest")

    response = requests.get(entry["url"], timeout=10)
    response.raise_for_status()
    downloads = response.json().get("downloads", {})
    side = release_type.value
    jar_url = downloads.get(side, {}).get("url")
    mappings_url = downloads.get(f"{side}_mappings", {}).get("url")
    if not jar_url:
        raise VersionNotFoundError(f"No {side} jar available for {minecraft_version}")
    if not mappings_url:
        raise VersionNotFoundError(f"No {side} mappings available for {minecraft_version}")
    return Version(release_type, minecraft_version, jar_url, mappings_url)


def download_file(url, path):
    if path.exists():
        path.unlink()
    path.touch()
    with requests.get(url, stream=True) as response:
        response.raise_for_status()
        length = response.headers.get("content-length", "")
        total = int(length) if length.isdigit() and int(length) > 0 else None
        with open(path, "wb") as f, tqdm(total=total, unit="B", unit_scale=True, desc=path.name) as bar:
            for chunk in response.iter_content(chunk_size=BUFFER_SIZE):
                f.write(chunk)
                bar.update(len(chunk))


def elapsed_ms(start):
    return int((time.time() - start) * 1000)


class Processor:
    def __init__(self, version, decompile, work_dir, app=None, remapper=None, decompiler=None):
        self.version = version
        self.decompile = decompile
        self.app = app or NullStatusSink()
        self.remapper = remapper or Remapper()
        self.decompiler = decompiler or Decompiler()

        self.work_dir = Path(work_dir)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.jar_file = self.work_dir / version.jar_name
        self.mappings_file = self.work_dir / version.mappings_name
        self.remapped_jar = self.work_dir / version.remapped_name

    def init(self):
        """Run every stage in order and return the process exit status."""
        start = time.time()
        try:
            self.download_jar()
            self.download_mappings()
        except (requests.RequestException, OSError):
            traceback.print_exc()
            return EXIT_OK

        if isinstance(self.remap_jar(), RemapFailure):
            return EXIT_REMAP_FAILURE
        if self.decompile:
            self.decompile_jar()

        finish = elapsed_ms(start)
        print(f"Process finished in {finish} milliseconds!")
        self.app.update_status_box(f"Completed in {finish} milliseconds!")
        self.app.update_button("Start!")
        return EXIT_OK

    def download_jar(self):
        start = time.time()
        print("Downloading jar file from Mojang.")
        self.app.update_status_box("Downloading jar")
        self.app.update_button("Downloading jar", BLUE)
        download_file(self.version.jar_url, self.jar_file)
        print(f"Successfully downloaded jar file in {elapsed_ms(start)} milliseconds")

    def download_mappings(self):
        start = time.time()
        print("Downloading mappings file from Mojang.")
        self.app.update_status_box("Downloading mappings")
        self.app.update_button("Downloading mappings", BLUE)
        download_file(self.version.mappings_url, self.mappings_file)
        print(f"Successfully downloaded mappings file in {elapsed_ms(start)} milliseconds")

    def remap_jar(self):
        start = time.time()
        self.app.update_status_box("Remapping...")
        self.app.update_button("Remapping...", BLUE)

        if self.remapped_jar.exists():
            print(f"{self.version.remapped_name} already remapped... skipping mapping!")
            return None

        print(f"Remapping {self.version.jar_name} file...")
        server = self.version.release_type is ReleaseType.SERVER
        try:
            args = build_remap_args(server, self.jar_file, self.mappings_file, self.remapped_jar)
            command = self.remapper.build_command(args)
        except RemapArgumentError as e:
            print(f"{RED}Encountered an error while parsing arguments: {e}{RESET}")
            traceback.print_exc()
            self.app.update_status_box("fail")
            return RemapFailure(e)

        self.remapper.run(command)
        print(f"Remapping completed in {elapsed_ms(start)} milliseconds")
        return None

    def decompile_jar(self):
        start = time.time()
        print("Decompiling final jar file.")
        self.app.update_status_box("Decompiling... This will take a while!")
        self.app.update_button("Decompiling...", BLUE)

        output_dir = self.work_dir / DECOMPILE_DIR_NAME
        os.makedirs(output_dir, exist_ok=True)
        command = self.decompiler.build_command(build_decompile_args(self.remapped_jar, output_dir))
        self.decompiler.run(command)
        print(f"Decompiling completed in {elapsed_ms(start)} milliseconds")


def prompt_force_accept(version):
    prompt = (f"{RED}WARNING: '{version}' does not look like a Minecraft version.\n"
              f"Continue anyway? (y/N): {RESET}")
    answer = input(prompt).strip().lower()
    return answer == 'y'


def main(version_type, minecraft_version, decompile=False, work_dir=None, app=None):
    try:
        version = resolve_version(ReleaseType(version_type), minecraft_version)
    except VersionNotFoundError as e:
        print(f"{RED}{e}{RESET}")
        return EXIT_BAD_VERSION
    except (requests.RequestException, ValueError):
        print(f"{RED}Could not read the version manifest for {minecraft_version}{RESET}")
        traceback.print_exc()
        return EXIT_BAD_VERSION

    work_dir = Path(work_dir) if work_dir else resolve_work_dir()
    print(f"Working directory : {work_dir.absolute()}")
    return Processor(version, decompile, work_dir, app=app).init()


def cli():
    print(r"""
  __  __      _____             _
 |  \/  |    |  __ \           | |
 | \  / | ___| |  | | ___  ___ | |__
 | |\/| |/ __| |  | |/ _ \/ _ \| '_ \
 | |  | | (__| |__| |  __/ (_) | |_) |
 |_|  |_|\___|_____/ \___|\___/|_.__/
                                      """)
    version_type = input("Enter jar type, client or server (default client) : ").strip().lower() or "client"
    if version_type not in ("client", "server"):
        print(f"{RED}Unknown jar type '{version_type}', expected client or server.{RESET}")
        sys.exit(EXIT_BAD_VERSION)
    mc_ver = input      ("Enter Minecraft version (e.g. 1.20.1)             : ").strip()
    if not sanity_check_version(mc_ver) and not prompt_force_accept(mc_ver):
        sys.exit(EXIT_OK)
    decompile_input = input("Decompile the remapped jar? (y/N)                 : ").strip().lower()
    sys.exit(main(version_type, mc_ver, decompile_input == 'y'))


if __name__ == "__main__":
    cli()
