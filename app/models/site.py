"""
Site model - patrol sites on Route A / Route B
Feeds the site identity resolver (id, short code, English and Lao names)
"""
from datetime import datetime


def create_site_model(db):
    """Factory function to create Site model with db instance"""

    class Site(db.Model):
        """
        Site registry entry

        Attributes:
            id: Canonical site identifier
            code: Short site code used on QR labels and some field logs
            name_en: English display name
            name_lo: Lao display name
            route: Patrol circuit ('A' or 'B')
            status: 'active', 'inactive' or 'deleted'
        """
        __tablename__ = 'sites'

        id = db.Column(db.String(50), primary_key=True)
        code = db.Column(db.String(50))
        name_en = db.Column(db.String(200), nullable=False)
        name_lo = db.Column(db.String(200))
        route = db.Column(db.String(10))
        status = db.Column(db.String(20), nullable=False, default='active')
        created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

        __table_args__ = (
            db.Index('idx_sites_route', 'route'),
            db.Index('idx_sites_status', 'status'),
        )

        def to_dict(self):
            """Convert to dictionary for JSON serialization"""
            return {
                'id': self.id,
                'code': self.code,
                'nameEN': self.name_en,
                'nameLO': self.name_lo,
                'route': self.route,
                'status': self.status,
            }

        def __repr__(self):
            return f'<Site {self.id}: {self.name_en}>'

    return Site
