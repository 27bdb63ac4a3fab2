from wsmc.model.base import Model
