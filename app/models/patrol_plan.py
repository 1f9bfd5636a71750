"""
PatrolPlan model - planned site visits per date, shift and route
"""
from datetime import datetime


def create_patrol_plan_model(db):
    """Factory function to create PatrolPlan model with db instance"""

    class PatrolPlan(db.Model):
        """
        One planned patrol visit

        (date, shift, route, site_id) is kept unique by the plan service,
        which deduplicates against a fresh read before every insert. There
        is deliberately no unique constraint here.
        """
        __tablename__ = 'patrol_plans'

        id = db.Column(db.String(20), primary_key=True)
        date = db.Column(db.Date, nullable=False)
        shift = db.Column(db.String(20), nullable=False)
        route = db.Column(db.String(10), nullable=False)
        site_id = db.Column(db.String(50), nullable=False)
        site_name = db.Column(db.String(200))
        created_by = db.Column(db.String(100))
        created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

        __table_args__ = (
            db.Index('idx_patrol_plans_date', 'date'),
            db.Index('idx_patrol_plans_date_shift_route', 'date', 'shift', 'route'),
        )

        def __repr__(self):
            return f'<PatrolPlan {self.id}: {self.date} {self.shift} {self.route} {self.site_id}>'

    return PatrolPlan
