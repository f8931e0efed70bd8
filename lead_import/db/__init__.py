"""Record store interface, store implementations and the batched commit scheduler."""
