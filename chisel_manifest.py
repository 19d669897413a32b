# chisel_manifest.py
# Build matrix for the locomotion mod: every listed game version x loader.
from __future__ import annotations

from chiselbuild.dsl import dep, implementation, project, run_config, runtime_only


def manifest():
    return (
        project(mod_id="locomotion", mod_version="1.0.0")
        .variant("fabric")
        .versions("1.20.4", "1.21.1")
        .repositories(
            "https://maven.terraformersmc.com/",
            "https://maven.isxander.dev/releases",
            "https://api.modrinth.com/maven",
        )
        # Java 21 from 1.20.5 on
        .java(">=1.20.5", 21)
        .java_default(17)
        .common(
            implementation("com.mojang:minecraft:${minecraft}"),
        )
        .for_variant(
            "fabric",
            implementation("net.fabricmc:fabric-loader:${fabric_loader}"),
            implementation("net.fabricmc.fabric-api:fabric-api:${fabric_api_version}"),
            implementation("com.terraformersmc:modmenu:${modmenu_version}"),
            implementation("maven.modrinth:sodium:${sodium_version}"),
            implementation("maven.modrinth:iris:${iris_version}"),
            # Iris dependencies
            runtime_only("org.antlr:antlr4-runtime:4.13.1"),
            runtime_only("io.github.douira:glsl-transformer:2.0.1"),
            runtime_only("org.anarres:jcpp:1.4.14"),
        )
        .runs(
            run_config("client", args=["--username=Dev"]),
            run_config("server"),
        )
        .resources("fabric.mod.json", "${mod.id}-${loader}.mixin.json")
        .build()
    )
