"""
InspectionLog model - raw visit events written by the Guard Patrol app
"""
from datetime import datetime


def create_inspection_log_model(db):
    """Factory function to create InspectionLog model with db instance"""

    class InspectionLog(db.Model):
        """
        Raw inspection log row

        Columns mirror the field app's sheet and are stored as text exactly
        as synced. The timestamp is normally 'YYYY-MM-DD HH:MM:SS' local
        time but may be date-only, offset-aware or day-first; parsing is
        done by app.services.patrol_normalizer.
        """
        __tablename__ = 'inspection_logs'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        timestamp = db.Column(db.String(40), nullable=False)
        patrol_name = db.Column(db.String(200))
        route = db.Column(db.String(200))
        site_name = db.Column(db.String(200))
        guard_name = db.Column(db.String(200))
        shift = db.Column(db.String(100))
        score = db.Column(db.String(20))
        status = db.Column(db.String(50))
        gps = db.Column(db.String(200))
        issues = db.Column(db.Text)
        synced_at = db.Column(db.DateTime, default=datetime.utcnow)

        __table_args__ = (
            db.Index('idx_inspection_logs_timestamp', 'timestamp'),
        )

        def __repr__(self):
            return f'<InspectionLog {self.id}: {self.timestamp} {self.site_name}>'

    return InspectionLog
