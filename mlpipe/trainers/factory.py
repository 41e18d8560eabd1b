"""Factory for creating trainer strategy instances."""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mlpipe.trainers.base import BaseTrainer, TaskKind


class TrainerType(str, Enum):
    """Available trainer strategies."""

    LOGISTIC_REGRESSION = "logistic_regression"
    FAST_TREE_BINARY = "fast_tree_binary"
    MAXIMUM_ENTROPY = "maximum_entropy"
    LIGHT_GBM = "light_gbm"
    FAST_TREE = "fast_tree"
    SDCA = "sdca"
    LINEAR = "linear"


class TrainerFactory:
    """Factory for creating trainer strategy instances.

    Uses a decorator-based registry pattern to register trainer strategies.
    Strategies register themselves when imported.

    Example:
        >>> from mlpipe.trainers.factory import TrainerFactory, TrainerType
        >>> trainer = TrainerFactory.create(TrainerType.LOGISTIC_REGRESSION, label_column="Label")
        >>> pipeline = pipeline.append(trainer)
    """

    _registry: dict[TrainerType, type["BaseTrainer"]] = {}

    @classmethod
    def register(cls, trainer_type: TrainerType):
        """Decorator to register a trainer strategy.

        Args:
            trainer_type: The TrainerType enum value to register.

        Returns:
            Decorator function.

        Example:
            >>> @TrainerFactory.register(TrainerType.LINEAR)
            ... class LinearStrategy(BaseTrainer):
            ...     pass
        """

        def decorator(trainer_class: type["BaseTrainer"]) -> type["BaseTrainer"]:
            cls._registry[trainer_type] = trainer_class
            return trainer_class

        return decorator

    @classmethod
    def _resolve(cls, trainer_type: "TrainerType | str") -> TrainerType:
        if isinstance(trainer_type, str) and not isinstance(trainer_type, TrainerType):
            try:
                trainer_type = TrainerType(trainer_type)
            except ValueError:
                available = cls.list_available()
                raise ValueError(
                    f"Unknown trainer type '{trainer_type}'. Available: {available}"
                ) from None

        if trainer_type not in cls._registry:
            available = cls.list_available()
            raise ValueError(f"Trainer '{trainer_type.value}' not registered. Available: {available}")
        return trainer_type

    @classmethod
    def create(cls, trainer_type: "TrainerType | str", **kwargs: Any) -> "BaseTrainer":
        """Create a trainer instance by type.

        Args:
            trainer_type: Either a TrainerType enum or string identifier.
            **kwargs: Column names, threshold and hyperparameters for the trainer.

        Returns:
            A new instance of the requested trainer strategy.

        Raises:
            ValueError: If the trainer type is not registered.
        """
        return cls._registry[cls._resolve(trainer_type)](**kwargs)

    @classmethod
    def get_class(cls, trainer_type: "TrainerType | str") -> type["BaseTrainer"]:
        """Get the class for a trainer type without instantiating.

        Raises:
            ValueError: If the trainer type is not registered.
        """
        return cls._registry[cls._resolve(trainer_type)]

    @classmethod
    def list_available(cls, task: "TaskKind | None" = None) -> list[str]:
        """List registered trainer types, optionally only those for one task.

        Returns:
            List of trainer type identifiers.
        """
        return [
            t.value
            for t, trainer_class in cls._registry.items()
            if task is None or trainer_class.task == task
        ]
