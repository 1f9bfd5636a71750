"""
Inspector model - patrol supervisors who file inspection logs
"""
from datetime import datetime


def create_inspector_model(db):
    """Factory function to create Inspector model with db instance"""

    class Inspector(db.Model):
        """
        Inspector registry entry

        The shift column holds whatever the operators typed: a numeric
        code (1/2/3), an English or Lao shift name, or a mix of both.
        It is only consulted by the shift classifier.
        """
        __tablename__ = 'inspectors'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        name = db.Column(db.String(120), nullable=False)
        status = db.Column(db.String(20), nullable=False, default='active')
        shift = db.Column(db.String(100))
        created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
        updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

        def __repr__(self):
            return f'<Inspector {self.id}: {self.name}>'

    return Inspector
