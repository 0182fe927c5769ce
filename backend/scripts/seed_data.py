"""Seed the database with test data."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal.database import SessionLocal, engine, Base
import portal.models  # noqa: F401

from portal.models.post import Post
from portal.models.user import User
from portal.schemas.home_content import HomeContentIn
from portal.services import home_content_service
from portal.services.auth_service import hash_password

DEFAULT_PASSWORD = os.environ.get("SEED_PASSWORD", "portal123")


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        password_hash = hash_password(DEFAULT_PASSWORD)
        users = [
            User(name="Administración Red Horizon", email="admin@redhorizon.es", password_hash=password_hash, role="admin"),
            User(name="Lucía Pérez", email="lucia@redhorizon.es", password_hash=password_hash, role="resident"),
            User(name="Mario Gómez", email="mario@redhorizon.es", password_hash=password_hash, role="resident"),
        ]
        db.add_all(users)
        db.flush()

        posts = [
            Post(
                title="Corte de agua programado",
                category="Avisos",
                description="El martes de 9:00 a 13:00 no habrá suministro de agua por mantenimiento.",
                author_id=users[0].user_id,
            ),
            Post(
                title="Jornada de limpieza de áreas verdes",
                category="Eventos",
                description="Nos reunimos el sábado a las 10:00 en la entrada principal.",
                author_id=users[1].user_id,
            ),
            Post(
                title="Se vende bicicleta infantil",
                category="Ventas",
                description="Bicicleta en buen estado, talla 16. Interesados escribir a la casa 24.",
                author_id=users[2].user_id,
            ),
        ]
        db.add_all(posts)
        db.commit()

        home_content_service.create_or_update_home_content(
            db, HomeContentIn.model_validate(home_content_service.DEFAULT_HOME_CONTENT)
        )

        print(f"Seeded {len(users)} users, {len(posts)} posts and the initial home content.")
        print(f"Default password for every user: {DEFAULT_PASSWORD}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
