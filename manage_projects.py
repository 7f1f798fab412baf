"""
🛠️ PROJECTSHELF MANAGEMENT HELPER
Quick script to inspect users and maintain projects in the database.

Usage:
    python manage_projects.py --list-users
    python manage_projects.py --user-stats <username>
    python manage_projects.py --list-projects <username>
    python manage_projects.py --reslug
    python manage_projects.py --delete-project <project_id>
"""

import sys

from projectshelf.config import get_settings
from projectshelf.context import AppContext
from projectshelf.database import init_db
from projectshelf.models.project import Project
from projectshelf.models.user import User
from projectshelf.services import analytics as analytics_service
from projectshelf.services import users as user_service
from projectshelf.services.slugs import unique_slug


def open_session():
    context = AppContext.from_settings(get_settings())
    init_db(context.engine)
    return context.session_factory()


def list_users():
    """List all users"""
    db = open_session()

    try:
        users = db.query(User).order_by(User.created_at.asc()).all()

        if not users:
            print("No users found.")
            return

        print("\n👥 USERS:\n")
        print(f"{'Username':<25} {'Email':<35} {'Logins':<8} {'Projects':<10} {'Sign-in':<10}")
        print("-" * 90)

        for u in users:
            projects = db.query(Project).filter(Project.user_id == u.id).count()
            sign_in = "google" if u.google_id and not u.password_hash else "password"
            print(f"{u.username:<25} {u.email:<35} {u.login_count:<8} {projects:<10} {sign_in:<10}")

        print()
    finally:
        db.close()


def user_stats(username):
    """Print the analytics dashboard for one user"""
    db = open_session()

    try:
        user = user_service.get_by_username(db, username)
        if not user:
            print(f"❌ User '{username}' not found!")
            return False

        stats = analytics_service.dashboard(db, user)

        print(f"\n📊 USER STATS: {user.username}\n")
        print(f"Login Count:     {stats['login_count']}")
        print(f"Last Login:      {stats['last_login'] or 'Never'}")
        print(f"Total Visits:    {stats['total_visits']}")
        print(f"Visits (30d):    {sum(v['count'] for v in stats['recent_visits'])}")

        if stats["top_projects"]:
            print("Top Projects:")
            for item in stats["top_projects"]:
                title = item["title"] or f"(deleted {item['project_id']})"
                print(f"  {item['view_count']:>5}  {title}")
        print()

        return True
    finally:
        db.close()


def list_projects(username):
    """List a user's projects"""
    db = open_session()

    try:
        user = user_service.get_by_username(db, username)
        if not user:
            print(f"❌ User '{username}' not found!")
            return False

        projects = db.query(Project).filter(Project.user_id == user.id).order_by(Project.created_at.asc()).all()
        if not projects:
            print(f"{username} has no projects.")
            return True

        print(f"\n📁 PROJECTS OF {username}:\n")
        print(f"{'ID':<34} {'Slug':<35} {'Views':<8} {'Engagement':<10}")
        print("-" * 90)
        for p in projects:
            print(f"{p.id:<34} {p.slug:<35} {p.views:<8} {p.engagement:<10}")
        print()

        return True
    finally:
        db.close()


def reslug_projects():
    """Recompute every slug from its title, resolving collisions"""
    db = open_session()

    try:
        changed = 0
        for project in db.query(Project).order_by(Project.created_at.asc()).all():
            slug = unique_slug(db, project.title, exclude_id=project.id)
            if slug != project.slug:
                print(f"   {project.slug} -> {slug}")
                project.slug = slug
                # flush so the next unique_slug call sees it
                db.flush()
                changed += 1
        db.commit()

        print(f"✅ {changed} slug(s) updated")
        return True
    except Exception as e:
        db.rollback()
        print(f"❌ Reslug failed: {e}")
        return False
    finally:
        db.close()


def delete_project(project_id):
    """Delete a project"""
    db = open_session()

    try:
        project = db.query(Project).filter(Project.id == project_id).first()

        if not project:
            print(f"❌ Project '{project_id}' not found!")
            return False

        title = project.title
        db.delete(project)
        db.commit()

        print(f"✅ Project '{title}' has been deleted")
        return True
    finally:
        db.close()


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    command = argv[1]

    if command == "--list-users":
        list_users()

    elif command == "--user-stats":
        if len(argv) < 3:
            print("Usage: python manage_projects.py --user-stats <username>")
            return 1
        return 0 if user_stats(argv[2]) else 1

    elif command == "--list-projects":
        if len(argv) < 3:
            print("Usage: python manage_projects.py --list-projects <username>")
            return 1
        return 0 if list_projects(argv[2]) else 1

    elif command == "--reslug":
        return 0 if reslug_projects() else 1

    elif command == "--delete-project":
        if len(argv) < 3:
            print("Usage: python manage_projects.py --delete-project <project_id>")
            return 1
        return 0 if delete_project(argv[2]) else 1

    else:
        print(f"Unknown command: {command}")
        print(__doc__)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
