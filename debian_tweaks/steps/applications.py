"""Applications shipped as standalone .deb files or vendor installer scripts."""

from typing import List, Optional

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.models import PackageSource, PackageSpec, Step
from debian_tweaks.predicates import command_available, package_installed
from debian_tweaks.vendor import VENDOR_SCRIPTS, VendorScript


def resolve_url(ctx: StepContext, spec: PackageSpec) -> str:
    if spec.source == PackageSource.GITHUB_RELEASE:
        return ctx.releases.latest_release_asset(
            spec.repo, spec.pattern, selector=ctx.config.ASSET_SELECTOR
        )
    return spec.url


def deb_action(spec: PackageSpec):
    def action(ctx: StepContext) -> Optional[str]:
        url = resolve_url(ctx, spec)
        tmp_dir = ctx.workspace.make_temp_dir(spec.name)
        try:
            deb = ctx.downloader.fetch(url, tmp_dir / f"{spec.name}.deb")
            ctx.apt.install_deb(deb)
        finally:
            ctx.workspace.remove(tmp_dir)
        return f"installed from {url}"

    return action


def vendor_action(script: VendorScript):
    def action(ctx: StepContext) -> Optional[str]:
        ctx.vendors.run(script)
        return None

    return action


def deb_steps(config: Config) -> List[Step]:
    return [
        Step(
            name=f"install-deb-{spec.name}",
            description=f"Install {spec.name} from a .deb ({spec.source.value})",
            action=deb_action(spec),
            predicate=package_installed(spec.name),
            stage="apps",
        )
        for spec in config.DEB_PACKAGES
        if spec.source in (PackageSource.DEB_URL, PackageSource.GITHUB_RELEASE)
    ]


def vendor_steps(config: Config) -> List[Step]:
    steps = []
    for name in config.VENDOR_TOOLS:
        script = VENDOR_SCRIPTS[name]
        steps.append(
            Step(
                name=f"install-vendor-{name}",
                description=f"Install {name} with its vendor installer",
                action=vendor_action(script),
                predicate=command_available(name),
                stage="apps",
            )
        )
    return steps
