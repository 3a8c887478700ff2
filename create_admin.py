"""
Script para crear el primer usuario administrador del sistema
Ejecutar: python create_admin.py
"""
import sys
from database.conexion import SessionLocal, engine, Base
import models  # Importar para registrar los modelos
from models.usuario import User, ROLE_ADMIN, ROLE_AGENT, ROLE_MANAGER
from utils.auth import get_password_hash, validate_password_strength


def crear_admin():
    """Crea el usuario administrador por defecto"""
    db = SessionLocal()

    try:
        # Verificar si ya existe un admin
        admin_existente = db.query(User).filter(User.role == ROLE_ADMIN).first()

        if admin_existente:
            print("⚠️  Ya existe un administrador")
            print(f"   ID: {admin_existente.id}")
            print(f"   Email: {admin_existente.email}")
            return

        # Solicitar datos
        print("\n🔧 Creación de Usuario Administrador")
        print("=" * 50)

        email = input("Email (default: admin@travel-agentonline.com): ").strip().lower() \
            or "admin@travel-agentonline.com"

        while True:
            password = input("Password (8+ caracteres, mayúscula, minúscula y número): ").strip()
            try:
                validate_password_strength(password)
                break
            except ValueError as e:
                print(f"❌ {e}")

        first_name = input("Nombre (opcional): ").strip() or "Administrador"
        last_name = input("Apellido (opcional): ").strip() or "Sistema"

        nuevo_admin = User(
            email=email,
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=ROLE_ADMIN,
            is_active=True,
            failed_attempts=0
        )

        db.add(nuevo_admin)
        db.commit()
        db.refresh(nuevo_admin)

        print("\n✅ Usuario administrador creado exitosamente!")
        print(f"   ID: {nuevo_admin.id}")
        print(f"   Email: {nuevo_admin.email}")
        print(f"   Rol: {nuevo_admin.role}")
        print("\n🔐 Puede iniciar sesión con estas credenciales en /api/auth/login")

    except Exception as e:
        db.rollback()
        print(f"\n❌ Error al crear usuario administrador: {str(e)}")
        sys.exit(1)
    finally:
        db.close()


def crear_usuarios_demo():
    """Crea un manager y un agente de demostración (el agente queda asignado al manager)"""
    db = SessionLocal()

    try:
        print("\n📝 ¿Desea crear usuarios de demostración? (s/n): ", end="")
        respuesta = input().strip().lower()

        if respuesta != 's':
            return

        usuarios_demo = [
            {
                "email": "manager@travel-agentonline.com",
                "password": "Manager123",
                "first_name": "Olena",
                "last_name": "Kovalenko",
                "role": ROLE_MANAGER
            },
            {
                "email": "agent@travel-agentonline.com",
                "password": "Agent1234",
                "first_name": "Taras",
                "last_name": "Shevchuk",
                "role": ROLE_AGENT
            }
        ]

        manager = None
        creados = 0
        for user_data in usuarios_demo:
            existe = db.query(User).filter(User.email == user_data["email"]).first()

            if existe:
                print(f"⚠️  Usuario '{user_data['email']}' ya existe, omitiendo...")
                if existe.role == ROLE_MANAGER:
                    manager = existe
                continue

            nuevo_usuario = User(
                email=user_data["email"],
                hashed_password=get_password_hash(user_data["password"]),
                first_name=user_data["first_name"],
                last_name=user_data["last_name"],
                role=user_data["role"],
                manager_id=manager.id if manager and user_data["role"] == ROLE_AGENT else None,
                is_active=True,
                failed_attempts=0
            )

            db.add(nuevo_usuario)
            db.flush()
            if nuevo_usuario.role == ROLE_MANAGER:
                manager = nuevo_usuario
            creados += 1

        db.commit()

        if creados > 0:
            print(f"\n✅ Se crearon {creados} usuarios de demostración")
            print("\nCredenciales de acceso:")
            print("-" * 50)
            for user_data in usuarios_demo:
                print(f"  {user_data['role'].upper():10} | {user_data['email']:35} | {user_data['password']}")

    except Exception as e:
        db.rollback()
        print(f"\n❌ Error al crear usuarios demo: {str(e)}")
    finally:
        db.close()


if __name__ == "__main__":
    print("✈️  Travel Agency CRM - Inicialización de Usuarios")
    print("=" * 50)

    # Crear tablas si no existen
    print("\n📊 Verificando tablas de base de datos...")
    Base.metadata.create_all(bind=engine)
    print("✅ Tablas verificadas/creadas")

    crear_admin()

    crear_usuarios_demo()

    print("\n🎉 Proceso completado!")
    print("\n📖 Próximos pasos:")
    print("   1. Inicie el servidor: uvicorn main:app --reload")
    print("   2. Acceda a la documentación: http://localhost:8000/docs")
    print("   3. Use /api/auth/login para obtener el token JWT")
