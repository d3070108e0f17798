import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path so tests can import the local `src/` package.
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


PUBSPEC = """name: purplestack
description: Agentic development stack for building Nostr-enabled Flutter applications
# The following line prevents the package from being accidentally published to
# pub.dev using `flutter pub publish`. This is preferred for private packages.
publish_to: "none" # Remove this line if you wish to publish to pub.dev

# The following defines the version and build number for your application.
version: 1.0.0+1

environment:
  sdk: ^3.8.1

dependencies:
  flutter:
    sdk: flutter

  flutter_riverpod: ^2.6.1
  go_router: ^16.0.0
  models: ^0.3.0
  purplebase: ^0.3.0

dependency_overrides:
  models:
    git:
      url: https://github.com/purplebase/models
      ref: main
  purplebase:
    git:
      url: https://github.com/purplebase/purplebase
      ref: master

dev_dependencies:
  flutter_test:
    sdk: flutter
  icons_launcher: ^3.0.1

flutter:
  uses-material-design: true
"""

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\xff\xfepurplestack\x00"

TEMPLATE_FILES: dict[str, str] = {
    "README.md": "# Purplestack\n\nRun `flutter run` to start purplestack.\n",
    "lib/main.dart": (
        "import 'package:flutter/material.dart';\n"
        "import 'package:purplestack/router.dart';\n"
        "\n"
        "class PurplestackApp extends StatelessWidget {\n"
        "  @override\n"
        "  Widget build(BuildContext context) {\n"
        "    return MaterialApp.router(title: 'Purplestack', routerConfig: router);\n"
        "  }\n"
        "}\n"
    ),
    "lib/router.dart": "// routes for purplestack\nfinal router = GoRouter(routes: []);\n",
    "test/widget_test.dart": "import 'package:purplestack/main.dart';\n",
    "android/app/build.gradle.kts": (
        "android {\n"
        '    namespace = "com.example.purplestack"\n'
        "    defaultConfig {\n"
        '        applicationId = "com.example.purplestack"\n'
        "    }\n"
        "}\n"
    ),
    "android/app/src/main/AndroidManifest.xml": (
        '<manifest xmlns:android="http://schemas.android.com/apk/res/android">\n'
        '    <application android:label="Purplestack">\n'
        "    </application>\n"
        "</manifest>\n"
    ),
    "android/app/src/main/kotlin/com/example/purplestack/MainActivity.kt": (
        "package com.example.purplestack\n"
        "\n"
        "import io.flutter.embedding.android.FlutterActivity\n"
        "\n"
        "class MainActivity : FlutterActivity()\n"
    ),
    "ios/Runner/Info.plist": (
        "<key>CFBundleDisplayName</key>\n"
        "<string>Purplestack</string>\n"
        "<key>CFBundleName</key>\n"
        "<string>purplestack</string>\n"
    ),
    "ios/Runner.xcodeproj/project.pbxproj": (
        "PRODUCT_BUNDLE_IDENTIFIER = com.example.purplestack;\n"
        "PRODUCT_BUNDLE_IDENTIFIER = com.example.purplestack.RunnerTests;\n"
    ),
    "web/manifest.json": '{\n  "name": "Purplestack",\n  "short_name": "purplestack"\n}\n',
    "linux/CMakeLists.txt": 'set(BINARY_NAME "purplestack")\nset(APPLICATION_ID "com.example.purplestack")\n',
    "build/app/intermediates/stale.txt": "com.example.purplestack\n",
}


def write_template_project(root: Path) -> Path:
    (root / "pubspec.yaml").write_text(PUBSPEC, encoding="utf-8")
    for rel, content in TEMPLATE_FILES.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    icon = root / "web" / "icons" / "Icon-192.png"
    icon.parent.mkdir(parents=True, exist_ok=True)
    icon.write_bytes(PNG_BYTES)
    return root


@pytest.fixture
def template_project(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return write_template_project(root)


@dataclass
class FakeRunner:
    """Records commands instead of running flutter."""

    returncodes: dict[str, int] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)
    on_run: object = None

    def run(self, args, *, cwd=None, env=None, check=True):
        self.calls.append(list(args))
        if callable(self.on_run):
            self.on_run(list(args), cwd)
        key = " ".join(args[1:])
        rc = self.returncodes.get(key, 0)
        return subprocess.CompletedProcess(args, rc, stdout="", stderr="boom" if rc else "")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def _isolate_rename_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep developer shells (fvm, custom excludes) from leaking into tests.
    for name in list(os.environ):
        if name.startswith("PROJECT_RENAME_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PROJECT_RENAME_FLUTTER_CMD", "flutter")
