import os
import shutil
import subprocess
from pathlib import Path

RECONSTRUCT_JAR = "reconstruct-cli.jar"
FERNFLOWER_JAR = "fernflower.jar"

# Vendored libraries bundled inside server jars, left untouched by the remapper
SERVER_EXCLUDES = "com.google.,io.netty.,it.unimi.dsi.fastutil.,javax.,joptsimple.,org.apache."

# FernFlower options
DECOMPILE_OPTIONS = ["-dgs=1", "-hdc=0", "-rbr=0", "-asc=1", "-udv=0"]


class ToolNotFoundError(FileNotFoundError):
    pass


class RemapArgumentError(ValueError):
    """Raised when the remapper command line cannot be put together."""


def find_java(java="java"):
    path = shutil.which(java)
    if path is None:
        raise ToolNotFoundError(f"Could not find '{java}' on PATH. Install a Java runtime first.")
    return path


def build_remap_args(server, jar_file, mappings_file, output_file):
    args = ["-jar", str(Path(jar_file).absolute()),
            "-mapping", str(Path(mappings_file).absolute()),
            "-output", str(Path(output_file).absolute())]
    if server:
        args += ["-exclude", SERVER_EXCLUDES]
    args.append("-agree")
    return args


def build_decompile_args(jar_file, output_dir):
    return DECOMPILE_OPTIONS + [str(Path(jar_file).absolute()), str(Path(output_dir).absolute())]


class JavaTool:
    name = "tool"
    env_var = None
    default_jar = None

    def __init__(self, jar_path=None, java="java"):
        if jar_path is None:
            jar_path = os.environ.get(self.env_var, self.default_jar)
        self.jar_path = Path(jar_path)
        self.java = java

    def build_command(self, args):
        if not self.jar_path.is_file():
            raise ToolNotFoundError(f"Missing {self.name} jar: {self.jar_path}")
        return [find_java(self.java), "-jar", str(self.jar_path.absolute())] + list(args)

    def run(self, command):
        subprocess.run(command, check=True)


class Remapper(JavaTool):
    name = "Reconstruct"
    env_var = "MCDEOB_RECONSTRUCT_JAR"
    default_jar = RECONSTRUCT_JAR

    def build_command(self, args):
        args = list(args)
        for flag in ("-jar", "-mapping", "-output"):
            if flag not in args or args.index(flag) + 1 >= len(args):
                raise RemapArgumentError(f"Missing required argument {flag}")
            value = args[args.index(flag) + 1]
            if flag != "-output" and not Path(value).is_file():
                raise RemapArgumentError(f"Input for {flag} does not exist: {value}")
        try:
            return super().build_command(args)
        except ToolNotFoundError as e:
            raise RemapArgumentError(str(e)) from e


class Decompiler(JavaTool):
    name = "FernFlower"
    env_var = "MCDEOB_FERNFLOWER_JAR"
    default_jar = FERNFLOWER_JAR
