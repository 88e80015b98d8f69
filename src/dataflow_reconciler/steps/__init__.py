"""
Steps canônicos da reconciliação, na ordem do plano:

    teardown → components.unregister → components.register →
    definition.create → deployment.deploy
"""

from .components import RegisterComponentsStep, UnregisterComponentsStep
from .definition import CreateDefinitionStep
from .deploy import DeployStep
from .teardown import TeardownStep

__all__ = [
    "CreateDefinitionStep",
    "DeployStep",
    "RegisterComponentsStep",
    "TeardownStep",
    "UnregisterComponentsStep",
]
