"""Entity modules. Point ENTITY_MODULES at the ones a deployment uses."""
