# recipes.py
# Build recipes for every bundled dependency, in build order.
#
# Windows / MSVC only. Every quirk of a dependency (flags, sibling paths,
# artifact renames, debug-symbol relocation) lives here as data; the
# executor in runner.py is shared by all of them.
from __future__ import annotations

from .dsl import (
    cmake_build,
    cmake_configure,
    cmake_install,
    cmake_recipe,
    copy,
    copytree,
    ctest,
    msbuild,
    patch,
    recipe,
    rmtree,
    sh,
    table,
)

ZLIB = cmake_recipe(
    "zlib",
    description="zlib, shared + static, zdll.lib import alias",
    post_install=[
        copy("{dist}/lib/zlib{d}.lib", "{dist}/lib/zdll.lib"),
        copy("{build}/{cmake_config}/zlib{d}.pdb", "{dist}/bin/zlib{d}.pdb"),
        copy("{build}/{cmake_config}/zlibstatic{d}.pdb", "{dist}/lib/zlibstatic{d}.pdb"),
    ],
)

LZ4 = cmake_recipe(
    "lz4",
    "-DLZ4_BUILD_CLI=OFF",
    "-DLZ4_BUILD_LEGACY_LZ4C=OFF",
    lists_dir="{src}/build/cmake",
    description="lz4 library without CLI tools",
    post_install=[
        copy("{dist}/lib/lz4.lib", "{dist}/lib/liblz4.lib"),
        copy("{build}/{cmake_config}/lz4.pdb", "{dist}/bin/lz4.pdb"),
    ],
)

ZSTD = cmake_recipe(
    "zstd",
    "-DZSTD_BUILD_PROGRAMS=OFF",
    "-DZSTD_MULTITHREAD_SUPPORT=OFF",
    lists_dir="{src}/build/cmake",
    build_type=True,
    description="zstd library, single-threaded, without programs",
    post_install=[
        copy("{dist}/lib/zstd.lib", "{dist}/lib/libzstd.lib"),
        copy("{build}/lib/{cmake_config}/zstd.pdb", "{dist}/bin/zstd.pdb"),
        copy("{build}/lib/{cmake_config}/zstd_static.pdb", "{dist}/lib/zstd_static.pdb"),
    ],
)

ICU = recipe(
    "icu",
    uses_build_dir=False,
    description="ICU4C via the allinone Visual Studio solution",
    build=[msbuild("{src}/icu4c/source/allinone/allinone.sln", "/p:SkipUWP=true")],
    install=[
        copytree("{src}/icu4c/bin64", "{dist}/bin64"),
        copytree("{src}/icu4c/include", "{dist}/include"),
        copytree("{src}/icu4c/lib64", "{dist}/lib64"),
        copy("{src}/icu4c/LICENSE", "{dist}/LICENSE"),
    ],
    post_install=[
        copy("{dist}/lib64/icuind.lib", "{dist}/lib64/icuin.lib", only="debug"),
        copy("{dist}/lib64/icuucd.lib", "{dist}/lib64/icuuc.lib", only="debug"),
    ],
)

LIBXML2 = cmake_recipe(
    "libxml2",
    "-DLIBXML2_WITH_ICONV=OFF",
    "-DLIBXML2_WITH_ICU=ON",
    "-DICU_ROOT={deps[icu]}",
    "-DLIBXML2_WITH_LZMA=OFF",
    "-DLIBXML2_WITH_PROGRAMS=OFF",
    "-DLIBXML2_WITH_PYTHON=OFF",
    "-DLIBXML2_WITH_ZLIB=ON",
    "-DZLIB_ROOT={deps[zlib]}",
    needs=["zlib", "icu"],
    build_type=True,
    tested=True,
    description="libxml2 with ICU and zlib",
    post_install=[
        copy("{dist}/lib/libxml2d.lib", "{dist}/lib/libxml2.lib", only="debug"),
    ],
)

LIBXSLT = cmake_recipe(
    "libxslt",
    "-DLIBXSLT_WITH_PYTHON=OFF",
    "-DLibXml2_ROOT={deps[libxml2]}",
    needs=["libxml2"],
    tested=True,
    description="libxslt against the libxml2 distribution",
    post_install=[
        copy("{dist}/lib/libxsltd.lib", "{dist}/lib/libxslt.lib", only="debug"),
    ],
)

UUID_WIN = cmake_recipe(
    "uuid_win",
    tested=True,
    description="libuuid replacement for Windows",
    post_install=[
        copy("{dist}/lib/uuid_win.lib", "{dist}/lib/uuid.lib"),
    ],
)

INT128_WIN = recipe(
    "int128_win",
    description="header-only 128-bit integers; built only to run its tests",
    configure=[cmake_configure("{src}", prefix=False)],
    build=[cmake_build()],
    test=[ctest()],
    install=[
        copy("{src}/int128_win.h", "{dist}/int128_win.h"),
        copy("{src}/uint128_win.h", "{dist}/uint128_win.h"),
        copy("{src}/LICENSE.txt", "{dist}/LICENSE.txt"),
        copy("{src}/README.md", "{dist}/README.md"),
    ],
)

UTFCPP = cmake_recipe(
    "utfcpp",
    tested=True,
    description="UTF8-CPP headers",
    setup=[sh("submodules", "git submodule update --init extern/ftest", cwd="{src}")],
)

ANTLR4 = recipe(
    "antlr4",
    needs=["utfcpp"],
    description="ANTLR4 C++ runtime, utf8cpp instead of codecvt",
    patches=[
        patch(
            "{src}/runtime/Cpp/CMakeLists.txt",
            r'^# set\(CMAKE_CXX_FLAGS "\$\{CMAKE_CXX_FLAGS\} -DUSE_UTF8_INSTEAD_OF_CODECVT"\)$',
            'set(CMAKE_CXX_FLAGS "${CMAKE_CXX_FLAGS} -DUSE_UTF8_INSTEAD_OF_CODECVT")',
            "enable utf8cpp",
        ),
        patch(
            "{src}/runtime/Cpp/runtime/src/Vocabulary.cpp",
            r'^#include "Vocabulary.h"$',
            '#include "Vocabulary.h"\n\n#include <locale>',
            "std::toupper needs <locale>",
        ),
        patch(
            "{src}/runtime/Cpp/runtime/src/antlr4-common.h",
            r"^[ \t]*#if _MSC_VER >= 1900 && _MSC_VER < 2000$",
            "  #if 0 // _MSC_VER >= 1900 && _MSC_VER < 2000",
            "std::u32string workaround",
        ),
    ],
    configure=[
        cmake_configure(
            "{src}/runtime/Cpp",
            "-DWITH_STATIC_CRT=OFF",
            "-DCMAKE_CXX_STANDARD=14",
            "-Dutf8cpp_HEADER={deps[utfcpp]}/include/utf8cpp",
            build_type=True,
        )
    ],
    build=[cmake_build()],
    install=[cmake_install()],
    post_install=[
        copy("{src}/runtime/Cpp/dist/{cmake_config}/antlr4-runtime.pdb", "{dist}/lib/antlr4-runtime.pdb"),
        copy("{src}/runtime/Cpp/dist/{cmake_config}/antlr4-runtime-static.pdb", "{dist}/lib/antlr4-runtime-static.pdb"),
    ],
)

OPENSSL = recipe(
    "openssl",
    uses_build_dir=False,
    description="OpenSSL, VC-WIN64A via Perl Configure and NMake",
    configure=[
        sh(
            "configure",
            "perl Configure VC-WIN64A --prefix={dist_posix} --openssldir={dist_posix}/ssl",
            cwd="{src}",
            only="release",
        ),
        sh(
            "configure",
            "perl Configure VC-WIN64A --prefix={dist_posix} --openssldir={dist_posix}/ssl --debug",
            cwd="{src}",
            only="debug",
        ),
        sh("configdata", "perl configdata.pm --dump", cwd="{src}"),
    ],
    build=[sh("build", "nmake", cwd="{src}")],
    test=[sh("test", "nmake test", cwd="{src}")],
    install=[sh("install", "nmake install", cwd="{src}")],
    post_install=[rmtree("{dist}/html")],
)

ICONV = recipe(
    "iconv",
    description="win-iconv, shared only",
    configure=[
        cmake_configure(
            "{src}",
            "-DBUILD_STATIC=off",
            "-DBUILD_SHARED=on",
            "-DBUILD_EXECUTABLE=off",
            "-DBUILD_TEST=on",
            prefix=False,
        )
    ],
    build=[cmake_build()],
    test=[ctest()],
    install=[
        copy("{src}/iconv.h", "{dist}/include/iconv.h"),
        copy("{build}/{cmake_config}/iconv.dll", "{dist}/bin/iconv.dll"),
        copy("{build}/{cmake_config}/iconv.pdb", "{dist}/bin/iconv.pdb"),
        copy("{build}/{cmake_config}/iconv.lib", "{dist}/lib/iconv.lib"),
        copy("{build}/{cmake_config}/iconv.exp", "{dist}/lib/iconv.exp"),
        copy("{src}/readme.txt", "{dist}/readme.txt"),
        copy("{src}/ChangeLog", "{dist}/ChangeLog"),
    ],
)

FREETDS = recipe(
    "freetds",
    needs=["openssl", "iconv"],
    description="FreeTDS with MS dblib, OpenSSL and win-iconv",
    setup=[copytree("{deps[iconv]}", "{src}/iconv")],
    configure=[
        cmake_configure(
            "{src}",
            "-DENABLE_MSDBLIB=on",
            "-DCMAKE_INSTALL_PREFIX:PATH={dist}",
            "-DOPENSSL_ROOT_DIR={deps[openssl]}",
            generator="NMake Makefiles",
            build_type=True,
            prefix=False,
        )
    ],
    build=[sh("build", "nmake", cwd="{build}")],
    install=[sh("install", "nmake install", cwd="{build}")],
    post_install=[
        copy("{build}/src/ctlib/ct.pdb", "{dist}/bin/ct.pdb"),
        copy("{build}/src/dblib/sybdb.pdb", "{dist}/bin/sybdb.pdb"),
        copy("{build}/src/odbc/tdsodbc.pdb", "{dist}/bin/tdsodbc.pdb"),
    ],
)

MIMALLOC = recipe(
    "mimalloc",
    uses_build_dir=False,
    description="mimalloc static library via the vs2022 solution",
    build=[msbuild("{src}/ide/vs2022/mimalloc.sln")],
    install=[
        copytree("{src}/include", "{dist}/include"),
        copy("{src}/out/msvc-x64/{msbuild_config}/mimalloc-static.lib", "{dist}/bin/mimalloc-static.lib"),
        copy("{src}/out/msvc-x64/{msbuild_config}/mimalloc-static.pdb", "{dist}/bin/mimalloc-static.pdb"),
        copy("{src}/LICENSE", "{dist}/LICENSE"),
    ],
)

WINFLEXBISON = recipe(
    "winflexbison",
    description="win_flex and win_bison executables",
    configure=[cmake_configure("{src}", prefix=False)],
    build=[cmake_build()],
    install=[
        copytree("{src}/bin/{cmake_config}", "{dist}/bin"),
        copy("{src}/flex/src/FlexLexer.h", "{dist}/include/FlexLexer.h"),
        copy("{src}/README.md", "{dist}/README.md"),
    ],
)


RECIPES = table(
    ZLIB,
    LZ4,
    ZSTD,
    ICU,
    LIBXML2,
    LIBXSLT,
    UUID_WIN,
    INT128_WIN,
    UTFCPP,
    ANTLR4,
    OPENSSL,
    ICONV,
    FREETDS,
    MIMALLOC,
    WINFLEXBISON,
)


def by_name() -> dict:
    return {r.name: r for r in RECIPES}
