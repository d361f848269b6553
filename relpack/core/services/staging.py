"""
Staging assembler: builds the package root on disk.

Given the install image the builder produced and the policy decision,
lays out the tree the packager consumes:

    etc/default/<name>{,-master,-slave}
    etc/<name>/zk
    etc/<name>-master/{quorum,work_dir}     (version-gated)
    usr/{bin,sbin,lib,libexec/<name>}       (copied from the install image)
    usr/bin/<name>-init-wrapper
    usr/share/doc/<name>/
    <init files>                            (by init variant)

Filesystem side effects only.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from relpack.core.data import templates
from relpack.core.errors import UnsupportedPlatform
from relpack.core.models.context import BuildContext
from relpack.core.models.platform import InitVariant
from relpack.core.services.policy import PolicyDecision

logger = logging.getLogger(__name__)

SKELETON = (
    "etc/default",
    "etc/{name}",
    "etc/{name}-master",
    "etc/{name}-slave",
    "var/log/{name}",
    "usr/bin",
    "usr/sbin",
    "usr/lib",
    "usr/libexec/{name}",
    "usr/share/doc/{name}",
)

DOC_FILES = ("LICENSE", "NOTICE", "README", "README.md")

# variant → [(path template, file template, mode)], one entry per role
INIT_LAYOUT: dict[InitVariant, tuple[tuple[str, str, int], ...]] = {
    InitVariant.SYSV: (("etc/init.d/{name}-{role}", templates.SYSV, 0o755),),
    InitVariant.UPSTART: (("etc/init/{name}-{role}.conf", templates.UPSTART, 0o644),),
    InitVariant.SYSTEMD: (
        ("usr/lib/systemd/system/{name}-{role}.service", templates.SYSTEMD, 0o644),
    ),
    InitVariant.NONE: (),
}


@dataclass
class StagingTree:
    """The assembled package root and the files the assembler wrote."""

    root: Path
    files: list[Path] = field(default_factory=list)

    def relative_files(self) -> list[str]:
        return sorted(str(p.relative_to(self.root)) for p in self.files)


def _write(tree: StagingTree, relative: str, content: str, mode: int = 0o644) -> None:
    path = tree.root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    path.chmod(mode)
    tree.files.append(path)


def init_files(variant: InitVariant, name: str) -> list[tuple[str, str, int]]:
    """Resolve the init integration files for a variant.

    Returns:
        ``(relative path, content, mode)`` per file.

    Raises:
        UnsupportedPlatform: For a variant with no layout entry.
    """
    try:
        layout = INIT_LAYOUT[InitVariant(variant)]
    except (KeyError, ValueError):
        raise UnsupportedPlatform(f"no init file layout for variant {variant!r}") from None

    files = []
    for path_tpl, content_tpl, mode in layout:
        for role in templates.ROLES:
            files.append((
                path_tpl.format(name=name, role=role),
                content_tpl.format(name=name, role=role),
                mode,
            ))
    return files


def copy_install_image(image: Path, root: Path) -> int:
    """Copy the builder's install image into the staging root verbatim.

    Symlinks are preserved. Returns the number of top-level entries copied.
    """
    if not image.is_dir():
        logger.warning("Install image %s does not exist, nothing to copy", image)
        return 0

    copied = 0
    for entry in sorted(image.iterdir()):
        target = root / entry.name
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
        else:
            if target.exists() or target.is_symlink():
                target.unlink()
            shutil.copy2(entry, target, follow_symlinks=False)
        copied += 1
    return copied


def assemble(context: BuildContext, policy: PolicyDecision, build_output_dir: Path) -> StagingTree:
    """Lay out the staging tree for ``context`` under ``context.staging_root``.

    Args:
        context: The run's build context (name, version, paths).
        policy: Decision from the policy table.
        build_output_dir: The install image produced by the builder.

    Raises:
        UnsupportedPlatform: If the policy's init variant has no layout.
    """
    name = context.metadata.name
    tree = StagingTree(root=context.staging_root)

    # Resolve init files first so an unknown variant fails before any writes.
    init = init_files(policy.init_variant, name)

    for relative in SKELETON:
        (tree.root / relative.format(name=name)).mkdir(parents=True, exist_ok=True)

    copied = copy_install_image(build_output_dir, tree.root)
    logger.debug("Copied %d entries from %s", copied, build_output_dir)

    _write(tree, f"etc/default/{name}", templates.DEFAULT_COMMON.format(name=name))
    _write(tree, f"etc/default/{name}-master", templates.DEFAULT_MASTER.format(name=name))
    _write(tree, f"etc/default/{name}-slave", templates.DEFAULT_SLAVE.format(name=name))
    _write(tree, f"etc/{name}/zk", templates.ZK.format(name=name))

    if policy.write_master_defaults:
        _write(tree, f"etc/{name}-master/quorum", templates.MASTER_QUORUM)
        _write(tree, f"etc/{name}-master/work_dir", templates.MASTER_WORK_DIR.format(name=name))

    _write(tree, f"usr/bin/{name}-init-wrapper", templates.INIT_WRAPPER.format(name=name), 0o755)

    for relative, content, mode in init:
        _write(tree, relative, content, mode)

    doc_dir = tree.root / "usr" / "share" / "doc" / name
    for doc in DOC_FILES:
        src = context.source_dir / doc
        if src.is_file():
            shutil.copy2(src, doc_dir / doc)
            tree.files.append(doc_dir / doc)

    logger.info(
        "Staged %d files under %s (%s init)",
        len(tree.files), tree.root, policy.init_variant.value,
    )
    return tree


def write_maintainer_scripts(scripts: dict[str, str], scripts_dir: Path) -> dict[str, str]:
    """Write hook scripts to disk; return hook name → script path for the packager."""
    paths: dict[str, str] = {}
    if not scripts:
        return paths
    scripts_dir.mkdir(parents=True, exist_ok=True)
    for hook, body in scripts.items():
        path = scripts_dir / f"{hook}.sh"
        path.write_text(body, encoding="utf-8")
        path.chmod(0o755)
        paths[hook] = str(path)
    return paths
