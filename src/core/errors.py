"""Domain errors raised by the store and services."""


class StoreError(RuntimeError):
    """The underlying database failed to complete an operation."""


class DataPointNotFoundError(LookupError):
    def __init__(self, point_id: int):
        super().__init__(f"DataPoint not found with id: {point_id}")
        self.point_id = point_id
