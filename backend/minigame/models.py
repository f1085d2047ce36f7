from datetime import datetime, timezone

from flask_login import UserMixin

from minigame import bcrypt, db


def _utcnow():
    return datetime.now(timezone.utc)


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(64), nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    gameplays = db.relationship('Gameplay', back_populates='player', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.display_name,
            'score': self.score,
        }


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    slug = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    thumbnail = db.Column(db.String(256), nullable=True)
    featured = db.Column(db.Boolean, default=False, nullable=False)
    gameplays = db.relationship('Gameplay', back_populates='game', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'thumbnail': self.thumbnail,
            'featured': self.featured,
        }


class Gameplay(db.Model):
    """One saved score. Rows are only ever inserted."""

    __tablename__ = 'gameplay'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    player_score = db.Column(db.Integer, default=0, nullable=False)
    inserted_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    game = db.relationship('Game', back_populates='gameplays')
    player = db.relationship('Player', back_populates='gameplays')

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'player_id': self.player_id,
            'player_score': self.player_score,
            'inserted_at': self.inserted_at.isoformat() if self.inserted_at else None,
        }
