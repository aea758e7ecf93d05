#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Usage: embed_glsl.py <output.h>
# Scans the current directory for *.glsl files and emits:
#   <output.h>          shared _shader_code record type
#   <output>.cpp        one _shader_code instance per shader
#   shader_externs.h    extern declarations for every instance
import sys, os, itertools
from dataclasses import dataclass
from typing import Optional

SHADER_SUFFIX = ".glsl"
SOURCE_SUFFIX = ".cpp"
EXTERNS_FILENAME = "shader_externs.h"
SHADER_TYPE_NAME = "_shader_code"
DEFAULT_GENERATOR = "embed_glsl"
INDENT = "  "

HOST_INCLUDES = (
    "GL/glew.h",
    "SDL2/SDL.h",
    "SDL2/SDL_opengl.h",
    None,
    "GL/glu.h",
    "GL/freeglut.h",
)


def die(msg, code=1):
    print(msg, file=sys.stderr)
    sys.exit(code)


@dataclass
class ShaderUnit:
    filename: str
    base_name: str
    subtype: str
    escaped_text: str
    true_length: int
    id: int

    @property
    def instance_name(self):
        return instance_name(self.base_name, self.subtype)


@dataclass
class GeneratedArtifacts:
    header: str
    source: str
    externs: Optional[str] = None


def decode_filename(filename):
    """Split ``<base>.<subtype>.glsl`` into ``(base, subtype)``.

    Returns None for names without a dot or with a different final
    extension. The subtype is everything between the first and the last
    dot, so ``a.glsl`` decodes to ``("a", "")``.
    """
    last_dot = filename.rfind(".")
    if last_dot < 0 or filename[last_dot:] != SHADER_SUFFIX:
        return None
    first_dot = filename.find(".")
    return filename[:first_dot], filename[first_dot + 1:last_dot]


def upper_ascii(text):
    return "".join(chr(ord(c) - 0x20) if "a" <= c <= "z" else c for c in text)


def instance_name(base_name, subtype):
    return upper_ascii(base_name) + "_" + subtype


def guard_token(output_name):
    chars = []
    for c in output_name:
        if "a" <= c <= "z":
            chars.append(chr(ord(c) - 0x20))
        elif "A" <= c <= "Z" or "0" <= c <= "9":
            chars.append(c)
        else:
            chars.append("_")
    return "_" + "".join(chars) + "_"


def source_name_for(header_name):
    stem, ext = os.path.splitext(header_name)
    if not ext:
        return None
    return stem + SOURCE_SUFFIX


def escape_c(line):
    return line.replace("\\", "\\\\").replace('"', '\\"')


def escape_lines(lines):
    """Turn shader lines into C string literal segments.

    Blank lines and lines starting with ``//`` in the first column are
    dropped. Returns ``(escaped_text, true_length)`` where ``true_length``
    is the UTF-8 byte count of the kept lines, one newline each.
    """
    escaped = []
    true_length = 0
    for line in lines:
        if line.endswith("\n"):
            line = line[:-1]
        if not line or line[:2] == "//":
            continue
        escaped.append('"' + escape_c(line) + '\\n"\n')
        true_length += len(line.encode("utf-8", "surrogateescape")) + 1
    return "".join(escaped), true_length


def indent_literal(escaped_text):
    # every segment after the first starts on a continuation line
    return escaped_text.replace("\n", "\n" + INDENT)


def scan_directory(path=os.curdir, matched=None):
    """Collect ShaderUnits from ``path`` in directory listing order.

    Every matching name, readable or not, is appended to ``matched`` when
    a list is given. Only readable files get a ShaderUnit and an ID.
    """
    units = []
    ids = itertools.count(1)
    with os.scandir(path) as entries:
        for entry in entries:
            name = entry.name
            if name.startswith("."):
                continue
            decoded = decode_filename(name)
            if decoded is None:
                continue
            if matched is not None:
                matched.append(name)
            try:
                with open(entry.path, "r", encoding="utf-8", errors="surrogateescape") as f:
                    escaped, true_length = escape_lines(f)
            except OSError:
                print("Could not read file <{}>, skipping.".format(name), file=sys.stderr)
                continue
            base_name, subtype = decoded
            units.append(ShaderUnit(name, base_name, subtype, escaped, true_length, next(ids)))
    return units


def banner(filename, generator):
    return (
        "/**\n"
        " * \\file {0}\n"
        " * \\author {1}\n"
        " *\n"
        " *   Auto-generated header file containing code from all shadersused in this\n"
        " * program.  A list of the files used to generated this file can be found at\n"
        " * the bottom of this file.\n"
        " *\n"
        " * file generated by:     {1}\n"
        " *\n"
        " */\n\n\n\n"
    ).format(filename, generator)


def header_preamble(guard):
    pad = " " * 39
    out = []
    out.append("#ifndef  SHADER_TYPE_NAME\n")
    out.append("# define SHADER_TYPE_NAME %s ///< A macro is used for the typename\n" % SHADER_TYPE_NAME)
    out.append(pad + "///< since it is automatically\n")
    out.append(pad + "///< generated by another program.\n#endif\n\n")
    out.append("#ifndef  %s\n# define %s\n\n" % (guard, guard))
    for inc in HOST_INCLUDES:
        out.append("#include<%s>\n" % inc if inc else "\n")
    out.append("\n")
    out.append(
        "/** Container for shader code.\n"
        " *  Streamlines use of hard-coded shaders in OpenGL by allowing them to be\n"
        " *  in their own files with the use of syntactic highlighting.\n"
        " *\n"
        " */\n"
    )
    out.append(
        "struct {0}\n"
        "{{\n"
        "  GLchar* code; ///< Source text.\n"
        "  GLuint  size; ///< Number of characters in the source text.\n"
        "  const GLuint  id; ///< unique ID for each bit of shader code.\n"
        "\n"
        "/** Ctor.  Necessary because structs are stored as constants.\n"
        " *\n"
        " * param c C-string of the shader source code.\n"
        " * param s The number of characters in the shader source.\n"
        " */\n"
        "  {0}( GLchar* c, GLuint s, GLuint i ) :\n"
        "    code(c), size(s), id(i)\n"
        "  {{}}\n"
        "\n"
        "}};\n\n".format(SHADER_TYPE_NAME)
    )
    return "".join(out)


def header_close(guard):
    return "\n#endif /* %s */\n\n" % guard


def file_listing(filenames):
    out = [
        "//\n",
        "// Summary of all files used for generation of this header:\n",
        "//\n",
    ]
    out.extend("// %s\n" % name for name in filenames)
    out.append("//\n")
    return "".join(out)


def shader_instance(unit):
    literal = indent_literal(unit.escaped_text) if unit.escaped_text else '""'
    return (
        "/** From file:  {0}\n */\n"
        "{1} {2}(\n{3}{4},\n{3}{5},\n{3}{6}\n);\n\n\n"
    ).format(unit.filename, SHADER_TYPE_NAME, unit.instance_name, INDENT,
             literal, unit.true_length, unit.id)


def externs_text(names):
    out = [
        "/** Include at the top of any .cpp files needing access to the uncompiled\n"
        " * shaders.  This isn't the best idea, but it's convenient.  I'll remove this\n"
        " * and do just do it manually later should it become a problem.\n"
        " */\n\n"
    ]
    out.extend("extern SHADER_TYPE_NAME %s;\n" % name for name in names)
    out.append("\n")
    return "".join(out)


class Emitter:
    """Accumulates the header and source text for one run.

    The banner and the record type are written once, when the first
    matching file is seen, even if that file later turns out unreadable.
    A run without matches produces single-space placeholders.
    """

    def __init__(self, header_name, generator=DEFAULT_GENERATOR):
        source_name = source_name_for(header_name)
        if source_name is None:
            raise ValueError("output file name has no extension: " + header_name)
        self.header_name = header_name
        self.source_name = source_name
        self.guard = guard_token(header_name)
        self.generator = generator
        self.header = []
        self.source = []
        self.filenames = []
        self.units = []
        self.commented = False
        self.preamble_emitted = False

    def match(self, filename):
        self.filenames.append(filename)
        if not self.commented:
            self.header.append(banner(self.header_name, self.generator))
            self.source.append(banner(self.source_name, self.generator))
            self.commented = True
        if not self.preamble_emitted:
            self.header.append(header_preamble(self.guard))
            self.source.append('\n#include "%s"\n\n' % os.path.basename(self.header_name))
            self.header.append(header_close(self.guard))
            self.preamble_emitted = True

    def add(self, unit):
        if unit.filename not in self.filenames:
            self.match(unit.filename)
        if any(u.instance_name == unit.instance_name for u in self.units):
            print("Warning: <{}> redefines instance {}.".format(unit.filename, unit.instance_name),
                  file=sys.stderr)
        self.source.append(shader_instance(unit))
        self.units.append(unit)

    def finish(self):
        if not self.commented:
            print("No files to process.", file=sys.stderr)
            return GeneratedArtifacts(" ", " ")
        listing = file_listing(self.filenames)
        header = "".join(self.header) + listing + "\n\n"
        source = "".join(self.source) + listing + "\n\n"
        return GeneratedArtifacts(header, source, externs_text(u.instance_name for u in self.units))


def emit(units, header_name, generator=DEFAULT_GENERATOR, matched=()):
    emitter = Emitter(header_name, generator)
    for filename in matched:
        emitter.match(filename)
    for unit in units:
        emitter.add(unit)
    return emitter, emitter.finish()


def write_text(path, text):
    with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="\n") as fh:
        fh.write(text)


def main(argv=None):
    if argv is None:
        argv = sys.argv
    generator = os.path.basename(argv[0]) if argv else DEFAULT_GENERATOR
    if len(argv) < 2:
        die("Missing output filename.\nUsage:\n  %s [output filename]" % generator, 1)

    header_name = argv[1]
    if source_name_for(header_name) is None:
        # not treated as a failure
        print("Invalid file name.", file=sys.stderr)
        return 0

    matched = []
    units = scan_directory(matched=matched)
    emitter, artifacts = emit(units, header_name, generator, matched)
    write_text(emitter.header_name, artifacts.header)
    write_text(emitter.source_name, artifacts.source)
    if artifacts.externs is not None:
        write_text(EXTERNS_FILENAME, artifacts.externs)
        print("Embedded {} shader(s) into {} and {}".format(
            len(emitter.units), emitter.header_name, emitter.source_name))
    return 0


if __name__ == "__main__":
    sys.exit(main())
