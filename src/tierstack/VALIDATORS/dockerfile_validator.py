# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Checks for single-stage and multi-stage build recipes.
"""
from typing import Dict, Optional, Set
from ..MODELS.dockerfile_ast import BuildRecipe, BuildStage
from ..MODELS.image_reference import ImageReference
from ..MODELS.report import Report

KNOWN_INSTRUCTIONS = {
    "ADD", "ARG", "CMD", "COPY", "ENTRYPOINT", "ENV", "EXPOSE", "FROM",
    "HEALTHCHECK", "LABEL", "MAINTAINER", "ONBUILD", "RUN", "SHELL",
    "STOPSIGNAL", "USER", "VOLUME", "WORKDIR",
}

class DockerfileValidator:
    """
    Validates a parsed Dockerfile.
    """
    def validate(self, recipe: BuildRecipe, source: Optional[str] = None) -> Report:
        """
        :param recipe: The parsed Dockerfile.
        :param source: Name used in issue locations, e.g. the file path.
        """
        report = Report(checked=1)
        prefix = f"{source}:" if source else "line "

        if not recipe.instructions:
            report.error("empty-dockerfile", "Dockerfile contains no instructions", source)
            return report

        for inst in recipe.preamble:
            if inst.instruction != "ARG":
                report.error(
                    "instruction-before-from",
                    f"{inst.instruction} appears before the first FROM; only ARG is allowed there",
                    f"{prefix}{inst.line}",
                )
        if not recipe.stages:
            report.error("missing-from", "Dockerfile has no FROM instruction", source)
            return report

        for inst in recipe.instructions:
            if inst.instruction not in KNOWN_INSTRUCTIONS:
                report.error("unknown-instruction", f"Unknown instruction {inst.instruction}", f"{prefix}{inst.line}")

        aliases: Dict[str, int] = {}
        for stage in recipe.stages:
            if not stage.alias:
                continue
            key = stage.alias.lower()
            if key in aliases:
                report.error(
                    "duplicate-stage-name",
                    f"Stage name {stage.alias} is used by stages {aliases[key]} and {stage.index}",
                    f"{prefix}{stage.line}",
                )
            else:
                aliases[key] = stage.index

        referenced: Set[int] = set()
        for stage in recipe.stages:
            base = self._stage_index(stage.base_image, aliases, len(recipe.stages))
            if base is not None and base < stage.index:
                referenced.add(base)
            else:
                # FROM only names stages built before this one
                self._check_base_image(report, stage, f"{prefix}{stage.line}")
            self._check_stage(report, stage, aliases, referenced, recipe, prefix)

        if recipe.is_multi_stage:
            for stage in recipe.stages[:-1]:
                if stage.index not in referenced:
                    name = stage.alias or str(stage.index)
                    report.info("unused-stage", f"Stage {name} is not used by the final image", f"{prefix}{stage.line}")

        return report

    def _check_stage(self, report: Report, stage: BuildStage, aliases: Dict[str, int],
                     referenced: Set[int], recipe: BuildRecipe, prefix: str):
        cmd_count = 0
        for inst in stage.instructions:
            location = f"{prefix}{inst.line}"
            if inst.instruction == "CMD":
                cmd_count += 1
                if cmd_count == 2:
                    report.warning("multiple-cmd", "Only the last CMD of a stage takes effect", location)
            if inst.instruction not in ("COPY", "ADD"):
                continue
            for flag in inst.flags:
                if not flag.startswith("--from="):
                    continue
                ref = flag.split("=", 1)[1]
                index = self._stage_index(ref, aliases, len(recipe.stages))
                if index is None:
                    if ':' in ref or '/' in ref:
                        # Copying from an external image
                        continue
                    report.error("unknown-stage", f"COPY --from={ref} does not name a build stage", location)
                elif index >= stage.index:
                    report.error(
                        "forward-stage-reference",
                        f"COPY --from={ref} refers to a stage that is not built before this one",
                        location,
                    )
                else:
                    referenced.add(index)

    def _check_base_image(self, report: Report, stage: BuildStage, location: str):
        if "$" in stage.base_image:
            # Resolved from a build argument
            return
        if stage.base_image.lower() == "scratch":
            return
        try:
            reference = ImageReference.parse(stage.base_image)
        except ValueError as e:
            report.error("invalid-image", str(e), location)
            return
        if not reference.is_pinned:
            report.warning("latest-tag", f"Base image {stage.base_image} is not pinned to a version", location)

    @staticmethod
    def _stage_index(ref: str, aliases: Dict[str, int], count: int) -> Optional[int]:
        if ref.lower() in aliases:
            return aliases[ref.lower()]
        if ref.isdigit() and int(ref) < count:
            return int(ref)
        return None
