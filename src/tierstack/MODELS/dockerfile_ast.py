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
Models for the Dockerfile Abstract Syntax Tree.
"""
from typing import List, Optional
from pydantic import BaseModel

class Instruction(BaseModel):
    """
    Represents a single instruction in a Dockerfile.
    """
    instruction: str
    arguments: List[str]
    raw: str
    line: int = 0
    flags: List[str] = []

class BuildStage(BaseModel):
    """
    Instructions from one ``FROM`` up to the next.
    """
    index: int
    base_image: str
    alias: Optional[str] = None
    line: int = 0
    instructions: List[Instruction] = []

class BuildRecipe(BaseModel):
    """
    A parsed Dockerfile, split into build stages.

    ``preamble`` holds whatever precedes the first ``FROM``; normally only
    global ``ARG`` instructions.
    """
    preamble: List[Instruction] = []
    stages: List[BuildStage] = []

    @property
    def is_multi_stage(self) -> bool:
        return len(self.stages) > 1

    @property
    def final_stage(self) -> Optional[BuildStage]:
        return self.stages[-1] if self.stages else None

    @property
    def stage_names(self) -> List[str]:
        return [s.alias for s in self.stages if s.alias]

    @property
    def global_args(self) -> List[str]:
        return [
            arg.split('=', 1)[0]
            for inst in self.preamble if inst.instruction == "ARG"
            for arg in inst.arguments
        ]

    @property
    def instructions(self) -> List[Instruction]:
        """All instructions in file order."""
        result = list(self.preamble)
        for stage in self.stages:
            result.extend(stage.instructions)
        return result
