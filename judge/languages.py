"""Language registry: sandbox image and shell templates per supported language.

Source code never appears verbatim in a command string. It is base64-encoded
on the host and decoded inside the sandbox before being written to disk.
"""

import base64
from collections.abc import Callable
from dataclasses import dataclass

from judge.errors import UnsupportedLanguageError

# (encoded_source, temp_path, success_message) -> command
CompileTemplate = Callable[[str, str, str], str]
# (encoded_source, temp_path) -> command
RunTemplate = Callable[[str, str], str]


@dataclass(frozen=True)
class LanguageDescriptor:
    key: str
    label: str
    image: str
    extensions: tuple[str, ...]
    success_message: str
    compile_template: CompileTemplate
    run_template: RunTemplate


def _compiled_build(compiler: str, ext: str) -> CompileTemplate:
    def template(encoded: str, temp: str, message: str) -> str:
        return f"""
echo '{encoded}' | base64 -d > {temp}{ext}
{compiler} {temp}{ext} -o {temp} 2>&1
EXIT_CODE=$?
rm -f {temp}{ext} {temp}
if [ $EXIT_CODE -ne 0 ]; then exit 1; fi
echo "{message}"
"""

    return template


def _compiled_run(compiler: str, ext: str) -> RunTemplate:
    def template(encoded: str, temp: str) -> str:
        return f"""
echo '{encoded}' | base64 -d > {temp}{ext}
{compiler} -O2 {temp}{ext} -o {temp} >/dev/null 2>&1 || {{ echo "Compilation failed" >&2; rm -f {temp}{ext}; exit 1; }}
{temp}
EXIT_CODE=$?
rm -f {temp}{ext} {temp}
exit $EXIT_CODE
"""

    return template


def _python_check(encoded: str, temp: str, message: str) -> str:
    return f"""
echo '{encoded}' | base64 -d > {temp}.py
python3 -m py_compile {temp}.py 2>&1
EXIT_CODE=$?
rm -f {temp}.py
if [ $EXIT_CODE -ne 0 ]; then exit 1; fi
echo "{message}"
"""


def _python_run(encoded: str, temp: str) -> str:
    return f"""
echo '{encoded}' | base64 -d > {temp}.py
python3 {temp}.py
EXIT_CODE=$?
rm -f {temp}.py
exit $EXIT_CODE
"""


LANGUAGES: dict[str, LanguageDescriptor] = {
    "c": LanguageDescriptor(
        key="c",
        label="C",
        image="judge-c",
        extensions=(".c",),
        success_message="Compilation successful",
        compile_template=_compiled_build("gcc", ".c"),
        run_template=_compiled_run("gcc", ".c"),
    ),
    "cpp": LanguageDescriptor(
        key="cpp",
        label="C++",
        image="judge-cpp",
        extensions=(".cpp", ".cc", ".cxx"),
        success_message="Compilation successful",
        compile_template=_compiled_build("g++", ".cpp"),
        run_template=_compiled_run("g++", ".cpp"),
    ),
    "python": LanguageDescriptor(
        key="python",
        label="Python",
        image="judge-python",
        extensions=(".py",),
        success_message="Syntax check successful",
        compile_template=_python_check,
        run_template=_python_run,
    ),
}


def resolve(language: str | None) -> LanguageDescriptor:
    """Look up a language by identifier.

    Raises:
        UnsupportedLanguageError: If the identifier is empty or unknown.
    """
    if not language or not language.strip():
        raise UnsupportedLanguageError(detail="Language must be specified")
    descriptor = LANGUAGES.get(language)
    if descriptor is None:
        raise UnsupportedLanguageError(detail=f"Unsupported language: {language}", language=language)
    return descriptor


def supported_languages() -> list[LanguageDescriptor]:
    return list(LANGUAGES.values())


def encode_source(source: str) -> str:
    return base64.b64encode(source.encode("utf-8")).decode("ascii")


def compile_command(descriptor: LanguageDescriptor, encoded_source: str, temp_path: str) -> str:
    return descriptor.compile_template(encoded_source, temp_path, descriptor.success_message)


def run_command(descriptor: LanguageDescriptor, encoded_source: str, temp_path: str) -> str:
    return descriptor.run_template(encoded_source, temp_path)


def detect_language(filename: str | None) -> str:
    """Map a filename to a language identifier by its extension.

    Unknown extensions are rejected rather than defaulted.
    """
    if filename:
        name = filename.lower()
        for key, descriptor in LANGUAGES.items():
            if any(name.endswith(ext) for ext in descriptor.extensions):
                return key
    raise UnsupportedLanguageError(
        detail=f"Cannot detect language from filename: {filename!r}",
        filename=filename,
    )
