"""
Data store wrapper over the SQLAlchemy session.

The core services only talk to the database through this class, so they can
be handed any object with the same methods.
"""
import logging

from pms.extensions import db

logger = logging.getLogger(__name__)


class DataStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def create(self, model, **fields):
        """Insert a new row and flush so the id is assigned"""
        obj = model(**fields)
        self.session.add(obj)
        self.session.flush()
        return obj

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def get(self, model, obj_id):
        if obj_id is None:
            return None
        return self.session.get(model, obj_id)

    def first_by(self, model, **filters):
        return self.session.query(model).filter_by(**filters).first()

    def find_by(self, model, **filters):
        return self.session.query(model).filter_by(**filters).all()

    def count_by(self, model, **filters):
        return self.session.query(model).filter_by(**filters).count()

    def update(self, obj, **fields):
        for key, value in fields.items():
            setattr(obj, key, value)
        self.session.flush()
        return obj

    def delete(self, obj):
        self.session.delete(obj)
        self.session.flush()

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
